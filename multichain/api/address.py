"""Human-readable and raw addresses, and the interfaces that convert them."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod

_LENGTH_PREFIX = struct.Struct(">I")
_MAX_LENGTH = 0xFFFFFFFF


def _marshal_bytes(data: bytes) -> bytes:
    if len(data) > _MAX_LENGTH:
        raise ValueError(f"data too long to marshal: {len(data)} bytes")
    return _LENGTH_PREFIX.pack(len(data)) + data


def _unmarshal_bytes(data: bytes) -> tuple[bytes, bytes]:
    if len(data) < _LENGTH_PREFIX.size:
        raise ValueError("unexpected end of buffer: missing length prefix")
    (length,) = _LENGTH_PREFIX.unpack_from(data)
    start = _LENGTH_PREFIX.size
    body = bytes(data[start : start + length])
    if len(body) < length:
        raise ValueError(
            f"unexpected end of buffer: expected {length} bytes, got {len(body)}"
        )
    return body, bytes(data[start + length :])


class Address(str):
    """A human-readable representation of a public identity."""

    __slots__ = ()

    def size_hint(self) -> int:
        """Number of bytes needed to represent the address in binary."""
        return _LENGTH_PREFIX.size + len(self.encode("utf-8"))

    def marshal(self) -> bytes:
        """Serialize the address as a length-prefixed UTF-8 string."""
        return _marshal_bytes(self.encode("utf-8"))

    @classmethod
    def unmarshal(cls, data: bytes) -> tuple["Address", bytes]:
        """Read an address from the front of ``data``; return it and the rest."""
        body, rest = _unmarshal_bytes(data)
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"invalid utf-8 in address: {exc}") from exc
        return cls(text), rest


class RawAddress(bytes):
    """An address decoded into its binary form."""

    __slots__ = ()

    def size_hint(self) -> int:
        """Number of bytes needed to represent the address in binary."""
        return _LENGTH_PREFIX.size + len(self)

    def marshal(self) -> bytes:
        """Serialize the raw address as length-prefixed bytes."""
        return _marshal_bytes(bytes(self))

    @classmethod
    def unmarshal(cls, data: bytes) -> tuple["RawAddress", bytes]:
        """Read a raw address from the front of ``data``; return it and the rest."""
        body, rest = _unmarshal_bytes(data)
        return cls(body), rest


class Encoder(ABC):
    """Converts raw addresses into human-readable addresses."""

    @abstractmethod
    def encode_address(self, raw_addr: RawAddress) -> Address:
        """Encode a raw address; raise ``ValueError`` if it is malformed."""


class Decoder(ABC):
    """Converts human-readable addresses into raw addresses."""

    @abstractmethod
    def decode_address(self, addr: Address) -> RawAddress:
        """Decode an address; raise ``ValueError`` if it is malformed."""


class EncodeDecoder(Encoder, Decoder):
    """Both encodes and decodes addresses."""