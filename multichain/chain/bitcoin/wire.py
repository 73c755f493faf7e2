"""Bitcoin transaction wire format: outpoints, inputs, outputs and messages."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from multichain.chain.bitcoin.btcutil import double_sha256

MAX_TX_IN_SEQUENCE_NUM = 0xFFFFFFFF
HASH_SIZE = 32

_WITNESS_MARKER = 0x00
_WITNESS_FLAG = 0x01
_MAX_U64 = (1 << 64) - 1


def write_var_int(value: int) -> bytes:
    """Encode ``value`` as a Bitcoin variable-length integer."""
    if not 0 <= value <= _MAX_U64:
        raise ValueError(f"var int out of range: {value}")
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", value)
    if value <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", value)
    return b"\xff" + struct.pack("<Q", value)


def write_var_bytes(data: bytes) -> bytes:
    """Encode ``data`` behind its variable-length size."""
    data = bytes(data)
    return write_var_int(len(data)) + data


@dataclass(frozen=True)
class OutPoint:
    """Reference to one output of a previous transaction."""

    hash: bytes
    index: int

    def __post_init__(self) -> None:
        if len(self.hash) != HASH_SIZE:
            raise ValueError(f"outpoint hash must be {HASH_SIZE} bytes, got {len(self.hash)}")
        if not 0 <= self.index <= 0xFFFFFFFF:
            raise ValueError(f"outpoint index out of range: {self.index}")
        object.__setattr__(self, "hash", bytes(self.hash))

    def serialize(self) -> bytes:
        return self.hash + struct.pack("<I", self.index)


@dataclass
class TxIn:
    """A transaction input."""

    previous_out_point: OutPoint
    signature_script: bytes = b""
    witness: list[bytes] = field(default_factory=list)
    sequence: int = MAX_TX_IN_SEQUENCE_NUM

    def _serialize(self) -> bytes:
        return (
            self.previous_out_point.serialize()
            + write_var_bytes(self.signature_script)
            + struct.pack("<I", self.sequence)
        )

    def _serialize_witness(self) -> bytes:
        return write_var_int(len(self.witness)) + b"".join(
            write_var_bytes(item) for item in self.witness
        )


@dataclass(frozen=True)
class TxOut:
    """A transaction output: an amount in satoshis and its locking script."""

    value: int
    pk_script: bytes = b""

    def __post_init__(self) -> None:
        if not -(1 << 63) <= self.value < (1 << 63):
            raise ValueError(f"output value does not fit in 64 bits: {self.value}")
        object.__setattr__(self, "pk_script", bytes(self.pk_script))


def serialize_tx_out(tx_out: TxOut) -> bytes:
    """Serialize one output as it appears on the wire."""
    return struct.pack("<q", tx_out.value) + write_var_bytes(tx_out.pk_script)


@dataclass
class MsgTx:
    """A Bitcoin transaction message."""

    version: int = 1
    tx_in: list[TxIn] = field(default_factory=list)
    tx_out: list[TxOut] = field(default_factory=list)
    lock_time: int = 0

    def add_tx_in(self, tx_in: TxIn) -> None:
        self.tx_in.append(tx_in)

    def add_tx_out(self, tx_out: TxOut) -> None:
        self.tx_out.append(tx_out)

    def has_witness(self) -> bool:
        """Whether any input carries witness data."""
        return any(tx_in.witness for tx_in in self.tx_in)

    def _encode(self, with_witness: bool) -> bytes:
        parts = [struct.pack("<i", self.version)]
        if with_witness:
            parts.append(bytes([_WITNESS_MARKER, _WITNESS_FLAG]))
        parts.append(write_var_int(len(self.tx_in)))
        parts.extend(tx_in._serialize() for tx_in in self.tx_in)
        parts.append(write_var_int(len(self.tx_out)))
        parts.extend(serialize_tx_out(tx_out) for tx_out in self.tx_out)
        if with_witness:
            parts.extend(tx_in._serialize_witness() for tx_in in self.tx_in)
        parts.append(struct.pack("<I", self.lock_time))
        return b"".join(parts)

    def serialize(self) -> bytes:
        """Serialize, using the witness encoding when any input has a witness."""
        return self._encode(self.has_witness())

    def serialize_no_witness(self) -> bytes:
        """Serialize without witness data."""
        return self._encode(False)

    def tx_hash(self) -> bytes:
        """Double SHA-256 of the witness-free serialization."""
        return double_sha256(self.serialize_no_witness())