import pytest
from hypothesis import given
from hypothesis import strategies as st

from multichain.chain.cosmos.gas import GasEstimator


@given(st.integers(min_value=0, max_value=(1 << 256) - 1))
def test_estimate_returns_gas_per_byte(gas_per_byte):
    gas_price, gas_cap = GasEstimator(gas_per_byte).estimate_gas()
    assert gas_price == gas_per_byte
    assert gas_cap == gas_per_byte


@pytest.mark.parametrize("value", [-1, 1 << 256])
def test_out_of_range_rejected(value):
    with pytest.raises(ValueError):
        GasEstimator(value)