"""Constant gas-per-byte estimation for Cosmos-based chains."""

from __future__ import annotations

from multichain.api.gas import Estimator

_MAX_U256 = (1 << 256) - 1


class GasEstimator(Estimator):
    """Always estimates the same gas-per-byte, for both price and cap."""

    def __init__(self, gas_per_byte: int) -> None:
        if not 0 <= gas_per_byte <= _MAX_U256:
            raise ValueError(f"gas per byte out of range: {gas_per_byte}")
        self.gas_per_byte = gas_per_byte

    def estimate_gas(self) -> tuple[int, int]:
        """Return ``(gas_per_byte, gas_per_byte)``."""
        return self.gas_per_byte, self.gas_per_byte