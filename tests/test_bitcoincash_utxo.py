from types import SimpleNamespace

import pytest

from multichain.api.address import Address
from multichain.api.utxo import Outpoint, Output, Recipient
from multichain.chain.bitcoin import btcutil
from multichain.chain.bitcoin.btcutil import REGRESSION_NET_PARAMS, double_sha256
from multichain.chain.bitcoin.txscript import (
    ScriptBuilder,
    SigHashType,
    TxSigHashes,
    calc_witness_sig_hash,
    serialize_signature,
)
from multichain.chain.bitcoincash.address import (
    new_address_pub_key_hash,
    new_address_script_hash_from_hash,
)
from multichain.chain.bitcoincash.utxo import (
    SIGHASH_FORK_ID,
    TxBuilder,
    calculate_bip143_sighash,
)

PARAMS = REGRESSION_NET_PARAMS
PKH = bytes(range(20))
SCRIPT_HASH = bytes(range(20, 40))
P2PKH_SCRIPT = bytes([0x76, 0xA9, 0x14]) + PKH + bytes([0x88, 0xAC])
P2SH_SCRIPT = bytes([0xA9, 0x14]) + SCRIPT_HASH + bytes([0x87])


def _input(value=100_000, index=0, tx_hash=b"\x11" * 32, sig_script=None):
    return SimpleNamespace(
        hash=tx_hash,
        index=index,
        value=value,
        pub_key_script=P2PKH_SCRIPT,
        sig_script=sig_script,
    )


def _p2pkh_recipient(value):
    addr = new_address_pub_key_hash(PKH, PARAMS).encode_address()
    return Recipient(to=Address(addr), value=value)


def _p2sh_recipient(value):
    addr = new_address_script_hash_from_hash(SCRIPT_HASH, PARAMS).encode_address()
    return Recipient(to=Address(addr), value=value)


def _build(inputs=None, recipients=None):
    inputs = [_input()] if inputs is None else inputs
    recipients = [_p2pkh_recipient(50_000)] if recipients is None else recipients
    return TxBuilder(PARAMS).build_tx(inputs, recipients)


def test_outputs_pay_to_cashaddr_scripts():
    tx = _build(recipients=[_p2pkh_recipient(40_000), _p2sh_recipient(30_000)])
    assert tx.outputs() == [
        Output(Outpoint(tx.hash(), 0), 40_000, P2PKH_SCRIPT),
        Output(Outpoint(tx.hash(), 1), 30_000, P2SH_SCRIPT),
    ]


def test_legacy_recipient_accepted():
    legacy = btcutil.AddressPubKeyHash(PKH, PARAMS.pub_key_hash_addr_id).encode_address()
    tx = _build(recipients=[Recipient(to=Address(legacy), value=1_000)])
    assert tx.msg_tx.tx_out[0].pk_script == P2PKH_SCRIPT


def test_negative_value_rejected():
    with pytest.raises(ValueError, match="expected value >= 0"):
        _build(recipients=[_p2pkh_recipient((1 << 64) - 1)])


def test_invalid_recipient_rejected():
    with pytest.raises(ValueError):
        _build(recipients=[Recipient(to=Address("bchreg:notanaddress"), value=1)])


def test_serialize_and_hash():
    tx = _build()
    raw = tx.serialize()
    assert raw[:4] == b"\x01\x00\x00\x00"
    assert tx.hash() == double_sha256(raw)


def test_inputs_are_referenced_in_order():
    inputs = [_input(index=3, tx_hash=b"\x22" * 32), _input(index=5)]
    tx = _build(inputs=inputs)
    assert tx.inputs() == inputs
    assert [t.previous_out_point.index for t in tx.msg_tx.tx_in] == [3, 5]
    assert tx.msg_tx.tx_in[0].previous_out_point.hash == b"\x22" * 32


def test_sighashes_match_bip143_with_fork_id():
    tx = _build(inputs=[_input(value=70_000), _input(value=80_000, index=1)])
    sig_hashes = TxSigHashes.from_tx(tx.msg_tx)
    expected = [
        calc_witness_sig_hash(
            P2PKH_SCRIPT, sig_hashes, SigHashType.ALL | SIGHASH_FORK_ID, tx.msg_tx, i, v
        )
        for i, v in enumerate([70_000, 80_000])
    ]
    assert tx.sighashes() == expected
    assert all(len(h) == 32 for h in tx.sighashes())


def test_sighash_commits_to_amount():
    low = _build(inputs=[_input(value=1_000)]).sighashes()
    high = _build(inputs=[_input(value=2_000)]).sighashes()
    assert low != high


def test_sighash_uses_sig_script_when_present():
    redeem = b"\x51\x52\x93"
    tx = _build(inputs=[_input(sig_script=redeem)])
    direct = calculate_bip143_sighash(
        redeem, TxSigHashes.from_tx(tx.msg_tx), SigHashType.ALL, tx.msg_tx, 0, 100_000
    )
    assert tx.sighashes() == [direct]


def test_bip143_out_of_range_index():
    tx = _build()
    with pytest.raises(IndexError):
        calculate_bip143_sighash(
            P2PKH_SCRIPT, TxSigHashes.from_tx(tx.msg_tx), SigHashType.ALL, tx.msg_tx, 1, 0
        )


def test_sign_builds_signature_script():
    tx = _build()
    pub_key = b"\x02" + b"\x33" * 32
    r, s = 5, 7
    signature = r.to_bytes(32, "big") + s.to_bytes(32, "big") + b"\x00"
    tx.sign([signature], pub_key)
    expected = (
        ScriptBuilder()
        .add_data(serialize_signature(r, s) + bytes([SigHashType.ALL | SIGHASH_FORK_ID]))
        .add_data(pub_key)
        .script()
    )
    assert tx.msg_tx.tx_in[0].signature_script == expected
    assert tx.signed is True


def test_sign_appends_sig_script():
    redeem = b"\x51\x52\x93"
    tx = _build(inputs=[_input(sig_script=redeem)])
    tx.sign([b"\x01" * 65], b"\x02" + b"\x33" * 32)
    assert tx.msg_tx.tx_in[0].signature_script.endswith(bytes([len(redeem)]) + redeem)


def test_sign_twice_rejected():
    tx = _build()
    tx.sign([b"\x01" * 65], b"\x02" * 33)
    with pytest.raises(ValueError, match="already signed"):
        tx.sign([b"\x01" * 65], b"\x02" * 33)


def test_sign_wrong_signature_count():
    tx = _build()
    with pytest.raises(ValueError, match="expected 1 signatures, got 2 signatures"):
        tx.sign([b"\x01" * 65, b"\x01" * 65], b"\x02" * 33)


def test_signing_changes_serialization_not_hash_inputs():
    tx = _build()
    before = tx.serialize()
    tx.sign([b"\x01" * 65], b"\x02" * 33)
    after = tx.serialize()
    assert len(after) > len(before)
    assert tx.hash() == double_sha256(after)