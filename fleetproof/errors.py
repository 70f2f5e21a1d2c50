"""
Error taxonomy.

Four families, handled differently by callers:
- Input/placement errors: recoverable locally, never retried.
- Claim errors: abort proof construction, never silently corrected.
- External service errors: retried at the call site, never advance phase.
- Protocol errors: malformed relay traffic.
"""

from __future__ import annotations
from enum import Enum


class FleetproofError(Exception):
    """Base class for all fleetproof errors."""


# =============================================================================
# Input / placement
# =============================================================================

class PlacementReason(Enum):
    """Why a ship could not be placed."""
    OUT_OF_BOUNDS = "out_of_bounds"
    OVERLAP = "overlap"
    ADJACENT = "adjacent"


class PlacementError(FleetproofError):
    """Raised on the first ship that cannot be placed."""

    def __init__(self, reason: PlacementReason, x: int, y: int, ship_index: int | None = None):
        self.reason = reason
        self.x = x
        self.y = y
        self.ship_index = ship_index
        super().__init__(f"Ship placement {reason.value} at ({x}, {y})")


class CompositionError(FleetproofError):
    """Ship sizes do not match the required fleet."""

    def __init__(self, expected: list[int], actual: list[int]):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Invalid fleet composition: expected {expected}, got {actual}")


class GridMismatchError(FleetproofError):
    """Stored cell grid disagrees with the ship list."""

    def __init__(self, mismatched_cells: list[tuple[int, int]]):
        self.mismatched_cells = mismatched_cells
        super().__init__(
            f"Grid representation doesn't match ships at {len(mismatched_cells)} cell(s)"
        )


class OutOfBoundsError(FleetproofError):
    """Coordinate outside the grid."""

    def __init__(self, x: int, y: int):
        self.x = x
        self.y = y
        super().__init__(f"Shot coordinates out of bounds: ({x}, {y})")


class InvalidActionError(FleetproofError):
    """Local action not allowed in the current phase or turn."""

    def __init__(self, message: str, code: str = "INVALID_PHASE"):
        self.code = code
        super().__init__(message)


# =============================================================================
# Claims
# =============================================================================

class ClaimMismatchError(FleetproofError):
    """Claimed result disagrees with ground truth."""

    def __init__(self, x: int, y: int, claimed: bool, actual: bool):
        self.x = x
        self.y = y
        self.claimed = claimed
        self.actual = actual
        super().__init__(
            f"Claimed shot result ({claimed}) doesn't match board state ({actual}) at ({x}, {y})"
        )


class IncompleteSinkError(FleetproofError):
    """Game-end claim requested while ship cells remain unhit."""

    def __init__(self, remaining_cells: int):
        self.remaining_cells = remaining_cells
        super().__init__(
            f"Not all ships are sunk ({remaining_cells} cell(s) remaining), "
            "cannot build game end claim"
        )


# =============================================================================
# External services
# =============================================================================

class ExternalServiceError(FleetproofError):
    """A collaborator call failed; safe to retry."""

    service = "external"


class ProvingError(ExternalServiceError):
    service = "prover"


class LedgerError(ExternalServiceError):
    service = "ledger"


class ChannelError(ExternalServiceError):
    service = "relay"


# =============================================================================
# Protocol
# =============================================================================

class ProtocolError(FleetproofError):
    """Relay message could not be understood."""
