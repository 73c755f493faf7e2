"""Interface for estimating recommended gas costs."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Estimator(ABC):
    """Estimates the gas price and gas cap per gas unit.

    Chains without a gas cap return the gas price for both values.
    """

    @abstractmethod
    def estimate_gas(self) -> tuple[int, int]:
        """Return ``(gas_price, gas_cap)`` for timely confirmation."""