"""
Fleetproof - Zero-knowledge Battleship client engine.

Keeps a player's board secret while every outcome stays verifiable:
- Board model and canonical cell serialization
- Commitments binding a board to a secret salt
- Ground-truth hit/miss and fleet-sunk verification
- Circuit inputs for the external proving service
- Session state machine and reconciliation of relay events
"""

__version__ = "0.1.0"
