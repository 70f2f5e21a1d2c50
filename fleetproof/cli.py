"""
Fleetproof CLI - Command-line interface for boards and the control API.

Usage:
    fleetproof board [--seed N] [--output ships.json]   Random legal fleet + commitment
    fleetproof commit <ships.json> [--salt HEX]         Validate a fleet and commit it
    fleetproof check-shot <ships.json> <x> <y>          Ground-truth hit/miss
    fleetproof serve [--host H] [--port P]              Run the control API
"""

import argparse
import json
import logging
import random
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Fleetproof - Zero-knowledge Battleship client",
        prog="fleetproof",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Board command
    board_parser = subparsers.add_parser("board", help="Generate a random legal fleet")
    board_parser.add_argument("--seed", type=int, help="Random seed")
    board_parser.add_argument("--salt", help="Salt as 32 hex chars (random if omitted)")
    board_parser.add_argument("--output", "-o", help="Write the ship list as JSON")

    # Commit command
    commit_parser = subparsers.add_parser("commit", help="Validate a fleet and print its commitment")
    commit_parser.add_argument("ships_file", help="Path to ships JSON")
    commit_parser.add_argument("--salt", help="Salt as 32 hex chars (random if omitted)")

    # Check-shot command
    shot_parser = subparsers.add_parser("check-shot", help="Say whether a shot hits a fleet")
    shot_parser.add_argument("ships_file", help="Path to ships JSON")
    shot_parser.add_argument("x", type=int, help="Column (0-9)")
    shot_parser.add_argument("y", type=int, help="Row (0-9)")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the local control API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "board":
        cmd_board(args)
    elif args.command == "commit":
        cmd_commit(args)
    elif args.command == "check-shot":
        cmd_check_shot(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def _load_board(path):
    """Load and validate a fleet from a JSON file; exits on error."""
    from .board import Board, validate_board
    from .errors import FleetproofError

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {path}")
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in {path}: {e}")
        sys.exit(1)

    if isinstance(data, list):
        data = {"ships": data}

    try:
        board = Board.from_dict(data)
        validate_board(board)
    except (KeyError, TypeError, ValueError) as e:
        print(f"Error: Malformed ship list: {e}")
        sys.exit(1)
    except FleetproofError as e:
        print(f"Error: {e}")
        sys.exit(1)
    return board


def _resolve_salt(salt):
    from .board import generate_salt, normalize_salt

    if salt is None:
        return generate_salt()
    try:
        return normalize_salt(salt)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)


def cmd_board(args):
    """Generate a random fleet and print it with its commitment."""
    from .board import commit, generate_random_board

    rng = random.Random(args.seed) if args.seed is not None else None
    board = generate_random_board(rng)
    salt = _resolve_salt(args.salt)

    print(board.render())
    print(f"\nSalt:       {salt}")
    print(f"Commitment: {commit(board, salt)}")

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(board.to_dict(), f, indent=2)
        print(f"Ships written to {args.output}")


def cmd_commit(args):
    """Validate a fleet file and print its commitment."""
    from .board import commit

    board = _load_board(args.ships_file)
    salt = _resolve_salt(args.salt)

    print(f"Fleet OK ({board.occupied_count} cells)")
    if args.salt is None:
        print(f"Salt:       {salt}")
    print(f"Commitment: {commit(board, salt)}")


def cmd_check_shot(args):
    """Print HIT or MISS for a shot against a fleet file."""
    from .errors import OutOfBoundsError
    from .verifier import is_hit

    board = _load_board(args.ships_file)
    try:
        hit = is_hit(board, args.x, args.y)
    except OutOfBoundsError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print("HIT" if hit else "MISS")


def cmd_serve(args):
    """Run the control API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install 'fleetproof[server]'")
        sys.exit(1)

    from .api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
