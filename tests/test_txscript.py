import hashlib

import pytest

from multichain.chain.bitcoin.btcutil import (
    AddressPubKey,
    AddressPubKeyHash,
    AddressScriptHash,
    AddressWitnessPubKeyHash,
    AddressWitnessScriptHash,
    MAIN_NET_PARAMS,
    double_sha256,
)
from multichain.chain.bitcoin.txscript import (
    OP_0,
    OP_CHECKSIG,
    OP_CODESEPARATOR,
    OP_EQUAL,
    OP_HASH160,
    OP_PUSHDATA1,
    OP_PUSHDATA2,
    SECP256K1_ORDER,
    ScriptBuilder,
    ScriptError,
    SigHashType,
    TxSigHashes,
    calc_signature_hash,
    calc_witness_sig_hash,
    is_pay_to_witness_pub_key_hash,
    is_pay_to_witness_script_hash,
    pay_to_addr_script,
    serialize_signature,
)
from multichain.chain.bitcoin.wire import MsgTx, OutPoint, TxIn, TxOut, serialize_tx_out

PKH = bytes(range(20))
P2PKH = AddressPubKeyHash(PKH, MAIN_NET_PARAMS.pub_key_hash_addr_id)
GENERATOR = bytes.fromhex(
    "0279BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798"
)


def _tx():
    tx = MsgTx(version=2)
    tx.add_tx_in(TxIn(OutPoint(b"\x01" * 32, 0)))
    tx.add_tx_in(TxIn(OutPoint(b"\x02" * 32, 1)))
    tx.add_tx_out(TxOut(1000, pay_to_addr_script(P2PKH)))
    return tx


def test_add_data_direct_push():
    data = bytes(range(1, 21))
    assert ScriptBuilder().add_data(data).script() == bytes([len(data)]) + data


def test_add_data_empty_is_op_0():
    assert ScriptBuilder().add_data(b"").script() == bytes([OP_0])


def test_add_data_small_integer():
    assert ScriptBuilder().add_data(b"\x05").script() == b"\x55"


def test_add_data_pushdata1():
    data = b"\x01" * 76
    script = ScriptBuilder().add_data(data).script()
    assert script[:2] == bytes([OP_PUSHDATA1, 76])
    assert script[2:] == data


def test_add_data_pushdata2():
    data = b"\x02" * 300
    script = ScriptBuilder().add_data(data).script()
    assert script[0] == OP_PUSHDATA2
    assert int.from_bytes(script[1:3], "little") == 300
    assert script[3:] == data


def test_add_data_too_large():
    assert len(ScriptBuilder().add_data(b"\x03" * 520).script()) == 523
    with pytest.raises(ScriptError):
        ScriptBuilder().add_data(b"\x03" * 521).script()


def test_p2pkh_script():
    assert pay_to_addr_script(P2PKH) == bytes([0x76, 0xA9, 0x14]) + PKH + bytes([0x88, 0xAC])


def test_p2sh_script():
    addr = AddressScriptHash(PKH, MAIN_NET_PARAMS.script_hash_addr_id)
    assert pay_to_addr_script(addr) == bytes([OP_HASH160, 20]) + PKH + bytes([OP_EQUAL])


def test_p2pk_script():
    addr = AddressPubKey(GENERATOR, MAIN_NET_PARAMS.pub_key_hash_addr_id)
    assert pay_to_addr_script(addr) == bytes([33]) + GENERATOR + bytes([OP_CHECKSIG])


def test_witness_script_predicates():
    wpkh = pay_to_addr_script(AddressWitnessPubKeyHash("bc", 0, PKH))
    wsh = pay_to_addr_script(AddressWitnessScriptHash("bc", 0, bytes(32)))
    assert is_pay_to_witness_pub_key_hash(wpkh)
    assert not is_pay_to_witness_script_hash(wpkh)
    assert is_pay_to_witness_script_hash(wsh)
    assert not is_pay_to_witness_pub_key_hash(wsh)
    assert not is_pay_to_witness_pub_key_hash(pay_to_addr_script(P2PKH))


def test_unsupported_address_type():
    with pytest.raises(ScriptError):
        pay_to_addr_script("not an address")


def test_serialize_signature_pinned():
    assert serialize_signature(1, 2) == bytes.fromhex("3006020101020102")


def test_serialize_signature_pads_high_bit():
    r = 0x80 << (8 * 31)
    sig = serialize_signature(r, 5)
    assert sig[0] == 0x30
    assert sig[1] == len(sig) - 2
    assert sig[4] == 0
    assert sig[5:37] == r.to_bytes(32, "big")


def test_serialize_signature_low_s():
    assert serialize_signature(9, SECP256K1_ORDER - 5) == serialize_signature(9, 5)


def test_single_without_matching_output():
    tx = _tx()
    assert calc_signature_hash(b"", SigHashType.SINGLE, tx, 1) == b"\x01" + bytes(31)


def test_code_separator_removed():
    tx = _tx()
    script = pay_to_addr_script(P2PKH)
    with_sep = bytes([OP_CODESEPARATOR]) + script
    assert calc_signature_hash(with_sep, SigHashType.ALL, tx, 0) == calc_signature_hash(
        script, SigHashType.ALL, tx, 0
    )
    pushed = bytes([1, OP_CODESEPARATOR]) + script
    assert calc_signature_hash(pushed, SigHashType.ALL, tx, 0) != calc_signature_hash(
        script, SigHashType.ALL, tx, 0
    )


def test_truncated_script_raises():
    with pytest.raises(ScriptError):
        calc_signature_hash(bytes([OP_PUSHDATA1]), SigHashType.ALL, _tx(), 0)
    with pytest.raises(ScriptError):
        calc_witness_sig_hash(bytes([5, 1]), TxSigHashes.from_tx(_tx()), SigHashType.ALL, _tx(), 0, 1)


def test_anyone_can_pay_ignores_other_inputs():
    script = pay_to_addr_script(P2PKH)
    hash_type = SigHashType.ALL | SigHashType.ANY_ONE_CAN_PAY
    tx1, tx2 = _tx(), _tx()
    tx2.tx_in[1] = TxIn(OutPoint(b"\x09" * 32, 4))
    assert calc_signature_hash(script, hash_type, tx1, 0) == calc_signature_hash(
        script, hash_type, tx2, 0
    )
    assert calc_signature_hash(script, SigHashType.ALL, tx1, 0) != calc_signature_hash(
        script, SigHashType.ALL, tx2, 0
    )


def test_none_ignores_outputs():
    script = pay_to_addr_script(P2PKH)
    tx1, tx2 = _tx(), _tx()
    tx2.add_tx_out(TxOut(7, b""))
    assert calc_signature_hash(script, SigHashType.NONE, tx1, 0) == calc_signature_hash(
        script, SigHashType.NONE, tx2, 0
    )


def test_tx_sig_hashes():
    tx = _tx()
    hashes = TxSigHashes.from_tx(tx)
    assert hashes.hash_outputs == double_sha256(b"".join(serialize_tx_out(o) for o in tx.tx_out))
    assert hashes.hash_prev_outs == double_sha256(
        b"".join(i.previous_out_point.serialize() for i in tx.tx_in)
    )


def test_witness_p2wpkh_uses_p2pkh_script_code():
    tx = _tx()
    hashes = TxSigHashes.from_tx(tx)
    wpkh = pay_to_addr_script(AddressWitnessPubKeyHash("bc", 0, PKH))
    p2pkh = pay_to_addr_script(P2PKH)
    digest = calc_witness_sig_hash(wpkh, hashes, SigHashType.ALL, tx, 0, 5000)
    assert len(digest) == 32
    assert digest == calc_witness_sig_hash(p2pkh, hashes, SigHashType.ALL, tx, 0, 5000)


def test_witness_hash_commits_to_amount():
    tx = _tx()
    hashes = TxSigHashes.from_tx(tx)
    script = hashlib.sha256(b"redeem").digest()
    assert calc_witness_sig_hash(script, hashes, SigHashType.ALL, tx, 1, 1) != calc_witness_sig_hash(
        script, hashes, SigHashType.ALL, tx, 1, 2
    )


def test_witness_index_out_of_range():
    tx = _tx()
    with pytest.raises(ScriptError):
        calc_witness_sig_hash(b"", TxSigHashes.from_tx(tx), SigHashType.ALL, tx, 2, 1)