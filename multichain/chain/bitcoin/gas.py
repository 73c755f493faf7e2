"""Fee estimation for Bitcoin, in satoshis per byte."""

from __future__ import annotations

import math
from typing import Protocol

from multichain.api.gas import Estimator

BTC_TO_SATOSHIS = 1e8
KILOBYTE_TO_BYTE = 1024
_MAX_U256 = (1 << 256) - 1


class _SmartFeeClient(Protocol):
    def estimate_smart_fee(self, num_blocks: int) -> float:
        """Estimated fee rate in BTC per kilobyte."""


class GasEstimationError(RuntimeError):
    """The fee could not be estimated; ``fallback`` holds the fallback gas."""

    def __init__(self, message: str, fallback: int) -> None:
        super().__init__(message)
        self.fallback = fallback


class GasEstimator(Estimator):
    """Estimates the SATs-per-byte needed to confirm within ``num_blocks``."""

    def __init__(self, client: _SmartFeeClient, num_blocks: int, fallback_gas: int) -> None:
        if not 0 <= fallback_gas <= _MAX_U256:
            raise ValueError(f"fallback gas out of range: {fallback_gas}")
        self.client = client
        self.num_blocks = num_blocks
        self.fallback_gas = fallback_gas

    def estimate_gas(self) -> tuple[int, int]:
        """Return ``(price, cap)`` in SATs-per-byte; both are the same value.

        Raises ``GasEstimationError`` carrying the fallback gas when the node
        cannot give an estimate or gives a non-positive fee rate.
        """
        try:
            fee_rate = self.client.estimate_smart_fee(self.num_blocks)
        except Exception as exc:
            raise GasEstimationError(str(exc), self.fallback_gas) from exc
        if fee_rate <= 0.0:
            raise GasEstimationError(f"invalid fee rate: {fee_rate}", self.fallback_gas)
        sats_per_byte = math.ceil(fee_rate * BTC_TO_SATOSHIS / KILOBYTE_TO_BYTE)
        return sats_per_byte, sats_per_byte