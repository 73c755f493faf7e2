import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from multichain.api.address import Address
from multichain.api.utxo import Client, Input, Outpoint, Output, Recipient

u32 = st.integers(min_value=0, max_value=(1 << 32) - 1)
u256 = st.integers(min_value=0, max_value=(1 << 256) - 1)

outpoints = st.builds(Outpoint, hash=st.binary(max_size=32), index=u32)
outputs = st.builds(
    Output, outpoint=outpoints, value=u256, pub_key_script=st.binary(max_size=40)
)
inputs = st.builds(
    Input, output=outputs, sig_script=st.one_of(st.none(), st.binary(max_size=40))
)


@given(outpoints)
def test_outpoint_roundtrip(outpoint):
    assert Outpoint.from_dict(outpoint.to_dict()) == outpoint


@given(outputs)
def test_output_roundtrip_through_json(output):
    text = json.dumps(output.to_dict())
    assert Output.from_dict(json.loads(text)) == output


@given(inputs)
def test_input_roundtrip_preserves_missing_sig_script(inp):
    back = Input.from_dict(inp.to_dict())
    assert back == inp
    assert (back.sig_script is None) == (inp.sig_script is None)


@given(st.text(), u256)
def test_recipient_roundtrip(to, value):
    recipient = Recipient(to=Address(to), value=value)
    back = Recipient.from_dict(recipient.to_dict())
    assert back == recipient
    assert isinstance(back.to, Address)


def test_json_keys_follow_wire_names():
    output = Output(Outpoint(b"\x01", 3), 5, b"\x02")
    inp = Input(output, b"\x03")
    d = inp.to_dict()
    assert set(d) == {"output", "sigScript"}
    assert set(d["output"]) == {"outpoint", "value", "pubKeyScript"}
    assert set(d["output"]["outpoint"]) == {"hash", "index"}
    assert d["output"]["outpoint"]["index"] == 3
    assert d["output"]["value"] == "5"


def test_input_exposes_output_fields():
    output = Output(Outpoint(b"\xab" * 32, 9), 1000, b"\x76\xa9")
    inp = Input(output)
    assert inp.hash == b"\xab" * 32
    assert inp.index == 9
    assert inp.value == 1000
    assert inp.pub_key_script == b"\x76\xa9"
    assert inp.outpoint == output.outpoint
    assert inp.sig_script is None


def test_recipient_coerces_plain_string():
    recipient = Recipient(to="addr", value=1)
    assert isinstance(recipient.to, Address)
    assert recipient.to == "addr"


@pytest.mark.parametrize("index", [-1, 1 << 32])
def test_outpoint_index_out_of_range(index):
    with pytest.raises(ValueError):
        Outpoint(b"", index)


@pytest.mark.parametrize("value", [-1, 1 << 256])
def test_output_value_out_of_range(value):
    with pytest.raises(ValueError):
        Output(Outpoint(b"", 0), value, b"")


def test_from_dict_rejects_bad_value():
    with pytest.raises(ValueError):
        Recipient.from_dict({"to": "x", "value": "not-a-number"})


def test_from_dict_rejects_bad_base64():
    with pytest.raises(ValueError):
        Outpoint.from_dict({"hash": "!!!", "index": 0})


def test_abstract_client_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Client()