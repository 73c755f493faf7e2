"""Calldata for contract invocations and the read-only contract caller."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod

from multichain.api.address import Address

_LENGTH_PREFIX = struct.Struct(">I")


class CallData(bytes):
    """Encodes a function and its parameters for a contract call."""

    __slots__ = ()

    def size_hint(self) -> int:
        """Number of bytes needed to represent the calldata in binary."""
        return _LENGTH_PREFIX.size + len(self)

    def marshal(self) -> bytes:
        """Serialize the calldata as length-prefixed bytes."""
        if len(self) > 0xFFFFFFFF:
            raise ValueError(f"calldata too long to marshal: {len(self)} bytes")
        return _LENGTH_PREFIX.pack(len(self)) + bytes(self)

    @classmethod
    def unmarshal(cls, data: bytes) -> tuple["CallData", bytes]:
        """Read calldata from the front of ``data``; return it and the rest."""
        if len(data) < _LENGTH_PREFIX.size:
            raise ValueError("unexpected end of buffer: missing length prefix")
        (length,) = _LENGTH_PREFIX.unpack_from(data)
        start = _LENGTH_PREFIX.size
        body = bytes(data[start : start + length])
        if len(body) < length:
            raise ValueError(
                f"unexpected end of buffer: expected {length} bytes, got {len(body)}"
            )
        return cls(body), bytes(data[start + length :])


class Caller(ABC):
    """Calls read-only functions on a contract."""

    @abstractmethod
    def call_contract(self, addr: Address, call_data: CallData) -> bytes:
        """Call the contract at ``addr`` and return its raw output."""