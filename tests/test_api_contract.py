import pytest
from hypothesis import given
from hypothesis import strategies as st

from multichain.api.address import Address
from multichain.api.contract import CallData, Caller


def test_calldata_wire_format():
    assert CallData(b"\xaa").marshal() == b"\x00\x00\x00\x01\xaa"


@given(st.binary(), st.binary())
def test_calldata_roundtrip(payload, trailing):
    data = CallData(payload)
    encoded = data.marshal()
    assert len(encoded) == data.size_hint()
    decoded, rest = CallData.unmarshal(encoded + trailing)
    assert decoded == data
    assert isinstance(decoded, CallData)
    assert rest == trailing


@given(st.binary(min_size=1, max_size=32))
def test_calldata_truncated_raises(payload):
    with pytest.raises(ValueError):
        CallData.unmarshal(CallData(payload).marshal()[:-1])


def test_calldata_missing_prefix_raises():
    with pytest.raises(ValueError):
        CallData.unmarshal(b"\x00\x01")


def test_caller_implementation_receives_arguments():
    class EchoCaller(Caller):
        def call_contract(self, addr, call_data):
            return addr.encode() + bytes(call_data)

    out = EchoCaller().call_contract(Address("c"), CallData(b"\x01"))
    assert out == b"c\x01"


def test_abstract_caller_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Caller()