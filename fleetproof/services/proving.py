"""
Proving Service - Turns circuit inputs into proof artifacts.

The backend is an opaque collaborator: named circuit + input object in,
proof bytes out. Failures surface as ProvingError with no partial output.

Implementations:
- HttpProvingService: JSON over HTTP to a prover endpoint
- MockProvingService: deterministic fake for development and tests
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any
import asyncio
import hashlib
import json
import logging

import requests

from ..errors import ProvingError
from ..verifier.claims import CircuitId

logger = logging.getLogger(__name__)


class ProvingService(ABC):
    """Abstract proving backend."""

    # False when prove() runs blocking work that a caller-side timeout cannot
    # cancel; such backends must bound their own calls.
    cancellable: bool = True

    @abstractmethod
    async def prove(self, circuit: CircuitId, payload: dict[str, Any]) -> bytes:
        """Produce a proof for `payload` under `circuit`. Raises ProvingError."""
        pass


class HttpProvingService(ProvingService):
    """
    Prover reached over HTTP.

    POST {base_url}/prove with {"circuit": ..., "input": ...};
    expects {"proof": "0x..."} back. Each request is bounded by the
    requests `timeout`; the worker thread cannot be cancelled.
    """

    cancellable = False

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    async def prove(self, circuit: CircuitId, payload: dict[str, Any]) -> bytes:
        return await asyncio.to_thread(self._post, circuit, payload)

    def _post(self, circuit: CircuitId, payload: dict[str, Any]) -> bytes:
        logger.info("Requesting %s proof from %s", circuit.value, self.base_url)
        try:
            response = self.session.post(
                f"{self.base_url}/prove",
                json={"circuit": circuit.value, "input": payload},
                timeout=self.timeout,
            )
            response.raise_for_status()
            proof_hex = response.json()["proof"]
        except requests.RequestException as e:
            raise ProvingError(f"Prover request for {circuit.value} failed: {e}") from e
        except (KeyError, ValueError) as e:
            raise ProvingError(f"Prover returned an invalid response for {circuit.value}") from e

        try:
            return bytes.fromhex(proof_hex[2:] if proof_hex.startswith("0x") else proof_hex)
        except (AttributeError, ValueError) as e:
            raise ProvingError(f"Prover returned a non-hex proof for {circuit.value}") from e


class MockProvingService(ProvingService):
    """
    Deterministic fake prover.

    The "proof" is a SHA3-256 over the circuit name and payload, so equal
    inputs always give equal proofs. `fail_times` makes the next N calls
    raise ProvingError.
    """

    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.requests: list[tuple[CircuitId, dict[str, Any]]] = []

    async def prove(self, circuit: CircuitId, payload: dict[str, Any]) -> bytes:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ProvingError(f"Mock prover failure for {circuit.value}")

        self.requests.append((circuit, payload))
        encoded = json.dumps({"circuit": circuit.value, "input": payload}, sort_keys=True)
        return hashlib.sha3_256(encoded.encode("utf-8")).digest()
