"""Fee estimation for Bitcoin Cash, in satoshis per byte."""

from __future__ import annotations

import math
from typing import Protocol

from multichain.api.gas import Estimator
from multichain.chain.bitcoin.gas import GasEstimationError

BCH_TO_SATOSHIS = 1e8
KILOBYTE_TO_BYTE = 1024
_MAX_U256 = (1 << 256) - 1

__all__ = ["BCH_TO_SATOSHIS", "KILOBYTE_TO_BYTE", "GasEstimationError", "GasEstimator"]


class _LegacyFeeClient(Protocol):
    def estimate_fee_legacy(self, num_blocks: int) -> float:
        """Estimated fee rate in BCH per kilobyte."""


class GasEstimator(Estimator):
    """Estimates the SATs-per-byte needed to confirm with minimal delay."""

    def __init__(self, client: _LegacyFeeClient, fallback_gas: int) -> None:
        if not 0 <= fallback_gas <= _MAX_U256:
            raise ValueError(f"fallback gas out of range: {fallback_gas}")
        self.client = client
        self.fallback_gas = fallback_gas

    def estimate_gas(self) -> tuple[int, int]:
        """Return ``(price, cap)`` in SATs-per-byte; both are the same value.

        Raises ``GasEstimationError`` carrying the fallback gas when the node
        cannot give an estimate or gives a non-positive fee rate.
        """
        try:
            fee_rate = self.client.estimate_fee_legacy(0)
        except Exception as exc:
            raise GasEstimationError(str(exc), self.fallback_gas) from exc
        if fee_rate <= 0.0:
            raise GasEstimationError(f"invalid fee rate: {fee_rate}", self.fallback_gas)
        sats_per_byte = math.ceil(fee_rate * BCH_TO_SATOSHIS / KILOBYTE_TO_BYTE)
        return sats_per_byte, sats_per_byte