"""Bech32 account addresses for Cosmos-based chains."""

from __future__ import annotations

from dataclasses import dataclass

from multichain.api.address import Address as HumanAddress
from multichain.api.address import Decoder, EncodeDecoder, Encoder, RawAddress
from multichain.chain.bitcoin import btcutil
from multichain.chain.bitcoin.btcutil import AddressError, ChecksumMismatchError

DEFAULT_HRP = "cosmos"
MAX_ADDR_LEN = 255

_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_INDEX = {char: value for value, char in enumerate(_BECH32_CHARSET)}
_MAX_BECH32_LENGTH = 1023
_CHECKSUM_LENGTH = 6


def _verify_address_format(raw: bytes) -> None:
    if not raw:
        raise AddressError("addresses cannot be empty")
    if len(raw) > MAX_ADDR_LEN:
        raise AddressError(f"address max length is {MAX_ADDR_LEN}, got {len(raw)}")


def _to_bech32(hrp: str, raw: bytes) -> str:
    return btcutil.bech32_encode(hrp, btcutil.convert_bits(raw, 8, 5, True))


def _from_bech32(text: str, hrp: str) -> bytes:
    if not text.strip():
        raise AddressError("empty address string is not allowed")
    if not 8 <= len(text) <= _MAX_BECH32_LENGTH:
        raise AddressError(f"invalid bech32 string length {len(text)}")
    if any(not 33 <= ord(c) <= 126 for c in text):
        raise AddressError("invalid character in bech32 string")
    lower = text.lower()
    if text != lower and text != text.upper():
        raise AddressError("bech32 string has mixed case")
    separator = lower.rfind("1")
    if separator < 1 or separator + _CHECKSUM_LENGTH + 1 > len(lower):
        raise AddressError("invalid bech32 separator index")
    decoded_hrp = lower[:separator]
    if decoded_hrp != hrp:
        raise AddressError(f"invalid Bech32 prefix; expected {hrp}, got {decoded_hrp}")
    try:
        values = [_BECH32_INDEX[c] for c in lower[separator + 1 :]]
    except KeyError as exc:
        raise AddressError(f"invalid bech32 character {exc.args[0]!r}") from None
    data = values[:-_CHECKSUM_LENGTH]
    # Re-encoding recomputes the checksum; a mismatch means corrupted input.
    if btcutil.bech32_encode(decoded_hrp, data) != lower:
        raise ChecksumMismatchError("bech32 checksum mismatch")
    raw = btcutil.convert_bits(data, 5, 8, False)
    _verify_address_format(raw)
    return raw


class Address(bytes):
    """Raw bytes of a Cosmos account address; ``str()`` gives its bech32 form."""

    def acc_address(self) -> bytes:
        """The address as plain account-address bytes."""
        return bytes(self)

    def __str__(self) -> str:
        return _to_bech32(DEFAULT_HRP, bytes(self))


@dataclass(frozen=True)
class AddressEncoder(Encoder):
    """Encodes raw account addresses into bech32 with prefix ``hrp``."""

    hrp: str = DEFAULT_HRP

    def encode_address(self, raw_addr: RawAddress) -> HumanAddress:
        raw = bytes(raw_addr)
        _verify_address_format(raw)
        return HumanAddress(_to_bech32(self.hrp, raw))


@dataclass(frozen=True)
class AddressDecoder(Decoder):
    """Decodes bech32 account addresses with prefix ``hrp`` into raw bytes."""

    hrp: str = DEFAULT_HRP

    def decode_address(self, addr: HumanAddress) -> RawAddress:
        return RawAddress(_from_bech32(str(addr), self.hrp))


class AddressEncodeDecoder(EncodeDecoder):
    """Encodes and decodes Cosmos account addresses."""

    def __init__(self, hrp: str = DEFAULT_HRP) -> None:
        self.hrp = hrp
        self.encoder = AddressEncoder(hrp)
        self.decoder = AddressDecoder(hrp)

    def encode_address(self, raw_addr: RawAddress) -> HumanAddress:
        return self.encoder.encode_address(raw_addr)

    def decode_address(self, addr: HumanAddress) -> RawAddress:
        return self.decoder.decode_address(addr)