"""Bitcoin script building, standard payment scripts and signature hashing."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from multichain.chain.bitcoin.btcutil import (
    AddressPubKey,
    AddressPubKeyHash,
    AddressScriptHash,
    AddressWitnessPubKeyHash,
    AddressWitnessScriptHash,
    double_sha256,
)
from multichain.chain.bitcoin.wire import MsgTx, TxIn, TxOut, serialize_tx_out, write_var_bytes

OP_0 = 0x00
OP_DATA_20 = 0x14
OP_DATA_32 = 0x20
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_CODESEPARATOR = 0xAB
OP_CHECKSIG = 0xAC

MAX_SCRIPT_SIZE = 10000
MAX_SCRIPT_ELEMENT_SIZE = 520
SIGHASH_MASK = 0x1F
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

_ZERO_HASH = bytes(32)


class ScriptError(ValueError):
    """A script could not be built, parsed or hashed."""


class SigHashType(IntEnum):
    """Signature hash types."""

    ALL = 0x01
    NONE = 0x02
    SINGLE = 0x03
    ANY_ONE_CAN_PAY = 0x80


def _push_data(data: bytes) -> bytes:
    size = len(data)
    if size == 0 or (size == 1 and data[0] == 0):
        return bytes([OP_0])
    if size == 1 and data[0] <= 16:
        return bytes([OP_1 - 1 + data[0]])
    if size == 1 and data[0] == 0x81:
        return bytes([OP_1NEGATE])
    if size < OP_PUSHDATA1:
        return bytes([size]) + data
    if size <= 0xFF:
        return bytes([OP_PUSHDATA1, size]) + data
    if size <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + struct.pack("<H", size) + data
    return bytes([OP_PUSHDATA4]) + struct.pack("<I", size) + data


class ScriptBuilder:
    """Builds a script from opcodes and canonical data pushes.

    Errors are remembered and raised by :meth:`script`.
    """

    def __init__(self) -> None:
        self._script = bytearray()
        self._error: str | None = None

    def add_op(self, opcode: int) -> "ScriptBuilder":
        if self._error is not None:
            return self
        if not 0 <= opcode <= 0xFF:
            self._error = f"invalid opcode {opcode}"
        elif len(self._script) + 1 > MAX_SCRIPT_SIZE:
            self._error = (
                f"adding an opcode would exceed the maximum allowed canonical "
                f"script length of {MAX_SCRIPT_SIZE}"
            )
        else:
            self._script.append(opcode)
        return self

    def add_data(self, data: bytes) -> "ScriptBuilder":
        if self._error is not None:
            return self
        data = bytes(data)
        push = _push_data(data)
        if len(self._script) + len(push) > MAX_SCRIPT_SIZE:
            self._error = (
                f"adding {len(push)} bytes of data would exceed the maximum "
                f"allowed canonical script length of {MAX_SCRIPT_SIZE}"
            )
        elif len(data) > MAX_SCRIPT_ELEMENT_SIZE:
            self._error = (
                f"adding a data element of {len(data)} bytes would exceed the "
                f"maximum allowed script element size of {MAX_SCRIPT_ELEMENT_SIZE}"
            )
        else:
            self._script.extend(push)
        return self

    def script(self) -> bytes:
        if self._error is not None:
            raise ScriptError(self._error)
        return bytes(self._script)


@dataclass(frozen=True)
class _Opcode:
    opcode: int
    data: bytes
    raw: bytes


def _parse_script(script: bytes) -> list[_Opcode]:
    ops = []
    pos = 0
    script = bytes(script)
    while pos < len(script):
        opcode = script[pos]
        start = pos
        pos += 1
        if OP_0 < opcode < OP_PUSHDATA1:
            length = opcode
        elif opcode in (OP_PUSHDATA1, OP_PUSHDATA2, OP_PUSHDATA4):
            width = {OP_PUSHDATA1: 1, OP_PUSHDATA2: 2, OP_PUSHDATA4: 4}[opcode]
            if pos + width > len(script):
                raise ScriptError(f"opcode {opcode:#04x} requires {width} length bytes")
            length = int.from_bytes(script[pos : pos + width], "little")
            pos += width
        else:
            length = 0
        if pos + length > len(script):
            raise ScriptError(
                f"opcode {opcode:#04x} requires {length} bytes, "
                f"but script has only {len(script) - pos} remaining"
            )
        data = script[pos : pos + length]
        pos += length
        ops.append(_Opcode(opcode, data, script[start:pos]))
    return ops


def _parse(script: bytes) -> list[_Opcode]:
    try:
        return _parse_script(script)
    except ScriptError as exc:
        raise ScriptError(f"cannot parse output script: {exc}") from exc


def is_pay_to_witness_pub_key_hash(script: bytes) -> bool:
    """Whether ``script`` is a version 0 pay-to-witness-pubkey-hash script."""
    return len(script) == 22 and script[0] == OP_0 and script[1] == OP_DATA_20


def is_pay_to_witness_script_hash(script: bytes) -> bool:
    """Whether ``script`` is a version 0 pay-to-witness-script-hash script."""
    return len(script) == 34 and script[0] == OP_0 and script[1] == OP_DATA_32


def pay_to_addr_script(addr) -> bytes:
    """The standard script that pays to ``addr``."""
    builder = ScriptBuilder()
    if isinstance(addr, AddressPubKeyHash):
        builder.add_op(OP_DUP).add_op(OP_HASH160).add_data(addr.script_address())
        builder.add_op(OP_EQUALVERIFY).add_op(OP_CHECKSIG)
    elif isinstance(addr, AddressScriptHash):
        builder.add_op(OP_HASH160).add_data(addr.script_address()).add_op(OP_EQUAL)
    elif isinstance(addr, AddressPubKey):
        builder.add_data(addr.script_address()).add_op(OP_CHECKSIG)
    elif isinstance(addr, (AddressWitnessPubKeyHash, AddressWitnessScriptHash)):
        builder.add_op(OP_0).add_data(addr.script_address())
    else:
        raise ScriptError(
            f"unable to generate payment script for unsupported address type "
            f"{type(addr).__name__}"
        )
    return builder.script()


@dataclass(frozen=True)
class TxSigHashes:
    """Midstate hashes shared by every witness signature hash of a transaction."""

    hash_prev_outs: bytes
    hash_sequence: bytes
    hash_outputs: bytes

    @classmethod
    def from_tx(cls, tx: MsgTx) -> "TxSigHashes":
        prev_outs = b"".join(tx_in.previous_out_point.serialize() for tx_in in tx.tx_in)
        sequences = b"".join(struct.pack("<I", tx_in.sequence) for tx_in in tx.tx_in)
        outputs = b"".join(serialize_tx_out(tx_out) for tx_out in tx.tx_out)
        return cls(double_sha256(prev_outs), double_sha256(sequences), double_sha256(outputs))


def calc_signature_hash(script: bytes, hash_type: int, tx: MsgTx, idx: int) -> bytes:
    """Legacy (pre-segwit) signature hash of input ``idx``."""
    ops = _parse(script)
    if not 0 <= idx < len(tx.tx_in):
        raise ScriptError(f"idx {idx} but {len(tx.tx_in)} txins")
    mask = hash_type & SIGHASH_MASK
    if mask == SigHashType.SINGLE and idx >= len(tx.tx_out):
        return b"\x01" + bytes(31)

    sub_script = b"".join(op.raw for op in ops if op.opcode != OP_CODESEPARATOR)
    tx_ins = [
        TxIn(
            tx_in.previous_out_point,
            sub_script if i == idx else b"",
            [],
            tx_in.sequence,
        )
        for i, tx_in in enumerate(tx.tx_in)
    ]
    tx_outs = list(tx.tx_out)

    if mask == SigHashType.NONE:
        tx_outs = []
        for i, tx_in in enumerate(tx_ins):
            if i != idx:
                tx_in.sequence = 0
    elif mask == SigHashType.SINGLE:
        tx_outs = [TxOut(-1, b"") for _ in range(idx)] + [tx_outs[idx]]
        for i, tx_in in enumerate(tx_ins):
            if i != idx:
                tx_in.sequence = 0

    if hash_type & SigHashType.ANY_ONE_CAN_PAY:
        tx_ins = [tx_ins[idx]]

    copy = MsgTx(tx.version, tx_ins, tx_outs, tx.lock_time)
    preimage = copy.serialize_no_witness() + struct.pack("<I", hash_type & 0xFFFFFFFF)
    return double_sha256(preimage)


def calc_witness_sig_hash(
    script: bytes,
    sig_hashes: TxSigHashes,
    hash_type: int,
    tx: MsgTx,
    idx: int,
    amount: int,
) -> bytes:
    """BIP-143 signature hash of segwit input ``idx`` spending ``amount``."""
    ops = _parse(script)
    if not 0 <= idx < len(tx.tx_in):
        raise ScriptError(f"idx {idx} but {len(tx.tx_in)} txins")
    mask = hash_type & SIGHASH_MASK
    anyone_can_pay = bool(hash_type & SigHashType.ANY_ONE_CAN_PAY)

    parts = [struct.pack("<i", tx.version)]
    parts.append(_ZERO_HASH if anyone_can_pay else sig_hashes.hash_prev_outs)
    if not anyone_can_pay and mask not in (SigHashType.SINGLE, SigHashType.NONE):
        parts.append(sig_hashes.hash_sequence)
    else:
        parts.append(_ZERO_HASH)

    tx_in = tx.tx_in[idx]
    parts.append(tx_in.previous_out_point.serialize())

    if len(ops) == 2 and ops[0].opcode == OP_0 and ops[1].opcode == OP_DATA_20:
        parts.append(
            bytes([0x19, OP_DUP, OP_HASH160, OP_DATA_20])
            + ops[1].data
            + bytes([OP_EQUALVERIFY, OP_CHECKSIG])
        )
    else:
        parts.append(write_var_bytes(b"".join(op.raw for op in ops)))

    parts.append(struct.pack("<Q", amount & 0xFFFFFFFFFFFFFFFF))
    parts.append(struct.pack("<I", tx_in.sequence))

    if mask not in (SigHashType.SINGLE, SigHashType.NONE):
        parts.append(sig_hashes.hash_outputs)
    elif mask == SigHashType.SINGLE and idx < len(tx.tx_out):
        parts.append(double_sha256(serialize_tx_out(tx.tx_out[idx])))
    else:
        parts.append(_ZERO_HASH)

    parts.append(struct.pack("<I", tx.lock_time))
    parts.append(struct.pack("<I", hash_type & 0xFFFFFFFF))
    return double_sha256(b"".join(parts))


def _canonical_int(value: int) -> bytes:
    encoded = value.to_bytes((value.bit_length() + 7) // 8, "big") or b"\x00"
    if encoded[0] & 0x80:
        encoded = b"\x00" + encoded
    return encoded


def serialize_signature(r: int, s: int) -> bytes:
    """DER-encode an ECDSA signature, normalising ``s`` to the low half."""
    if r < 0 or s < 0:
        raise ValueError("signature components must be non-negative")
    if s > SECP256K1_ORDER >> 1:
        s = abs(SECP256K1_ORDER - s)
    r_bytes = _canonical_int(r)
    s_bytes = _canonical_int(s)
    body = bytes([0x02, len(r_bytes)]) + r_bytes + bytes([0x02, len(s_bytes)]) + s_bytes
    return bytes([0x30, len(body)]) + body