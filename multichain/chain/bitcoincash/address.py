"""Bitcoin Cash addresses: the cashaddr format plus legacy base58 addresses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from multichain.api.address import Address, Decoder, EncodeDecoder, Encoder, RawAddress
from multichain.chain.bitcoin import btcutil
from multichain.chain.bitcoin.btcutil import (
    MAIN_NET_PARAMS,
    REGRESSION_NET_PARAMS,
    TEST_NET3_PARAMS,
    AddressError,
    ChecksumMismatchError,
    Params,
    UnknownAddressTypeError,
)

ALPHABET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
ALPHABET_REVERSE_LOOKUP = {char: index for index, char in enumerate(ALPHABET)}

_RIPEMD160_SIZE = 20
_P2PKH_VERSION = 0x00
_P2SH_VERSION = 0x08
_CHECKSUM_LENGTH = 8

_PREFIXES = (
    (MAIN_NET_PARAMS, "bitcoincash"),
    (TEST_NET3_PARAMS, "bchtest"),
    (REGRESSION_NET_PARAMS, "bchreg"),
)


def encode_to_string(data: bytes) -> str:
    """Map 5-bit values (already carrying a checksum) onto the cashaddr alphabet."""
    try:
        return "".join(ALPHABET[d] for d in data)
    except IndexError:
        raise AddressError("cashaddr values must be 5-bit") from None


def decode_string(address: str) -> bytes:
    """Map cashaddr characters back to 5-bit values; unknown characters give 0."""
    return bytes(ALPHABET_REVERSE_LOOKUP.get(char, 0) for char in address)


def poly_mod(v: bytes) -> int:
    """The BCH code checksum used by cashaddr."""
    c = 1
    for d in v:
        c0 = (c >> 35) & 0xFF
        c = ((c & 0x07FFFFFFFF) << 5) ^ d
        if c0 & 0x01:
            c ^= 0x98F2BC8E61
        if c0 & 0x02:
            c ^= 0x79B76D99E2
        if c0 & 0x04:
            c ^= 0xF33E5FB3C4
        if c0 & 0x08:
            c ^= 0xAE2EABE2A8
        if c0 & 0x10:
            c ^= 0x1E4F43E470
    return c ^ 1


def encode_prefix(prefix_string: str) -> bytes:
    """The lower five bits of each prefix character, followed by a zero."""
    return bytes(b & 0x1F for b in prefix_string.encode("utf-8")) + b"\x00"


def append_checksum(prefix: str, payload: bytes) -> bytes:
    """Append the eight 5-bit checksum values to ``payload``."""
    payload = bytes(payload)
    mod = poly_mod(encode_prefix(prefix) + payload + bytes(_CHECKSUM_LENGTH))
    checksum = bytes((mod >> (5 * (7 - i))) & 0x1F for i in range(_CHECKSUM_LENGTH))
    return payload + checksum


def verify_checksum(prefix: str, payload: bytes) -> bool:
    """Whether ``payload`` (with checksum) is well formed under ``prefix``."""
    return poly_mod(encode_prefix(prefix) + bytes(payload)) == 0


def address_prefix(params: Params) -> str:
    """The cashaddr prefix of a network; raise ``ValueError`` if it is unknown."""
    if params is None:
        raise ValueError("non-exhaustive pattern: params None")
    for known, prefix in _PREFIXES:
        if params == known:
            return prefix
    raise ValueError(f"non-exhaustive pattern: params {params.name}")


def _encode_cash_address(version: int, hash_bytes: bytes, params: Params) -> str:
    # Size bits of the version byte must agree with the hash length.
    if int((len(hash_bytes) - 20) / 4) != version % 8:
        raise AddressError(f"invalid version: {version}")
    try:
        data = btcutil.convert_bits(bytes([version]) + bytes(hash_bytes), 8, 5, True)
    except AddressError as exc:
        raise AddressError(f"invalid bech32 encoding: {exc}") from exc
    return encode_to_string(append_checksum(address_prefix(params), data))


def _encode_legacy_address(raw: bytes, params: Params) -> Address:
    encoded = btcutil.base58_encode(raw)
    try:
        btcutil.decode_address(encoded, params)
    except AddressError as exc:
        raise AddressError(f"address validation error: {exc}") from exc
    return Address(encoded)


def _decode_legacy_address(addr: str, params: Params) -> RawAddress:
    try:
        decoded, version = btcutil.check_decode(addr)
    except AddressError as exc:
        raise AddressError(f"checking: {exc}") from exc
    if len(decoded) != 20:
        raise AddressError(f"expected len 20, got len {len(decoded)}")
    if version in (params.pub_key_hash_addr_id, params.script_hash_addr_id):
        return RawAddress(btcutil.base58_decode(addr))
    raise AddressError("unexpected address prefix")


@dataclass(frozen=True)
class AddressLegacy:
    """A legacy Bitcoin address used on Bitcoin Cash."""

    address: object

    def bitcoin_address(self):
        return self.address

    def encode_address(self) -> str:
        return self.address.encode_address()

    def script_address(self) -> bytes:
        return self.address.script_address()

    def is_for_net(self, params: Params) -> bool:
        return self.address.is_for_net(params)

    def __str__(self) -> str:
        return self.encode_address()


@dataclass(frozen=True)
class AddressPubKeyHash:
    """A P2PKH address rendered in the cashaddr format."""

    address: btcutil.AddressPubKeyHash
    params: Params

    def encode_address(self) -> str:
        return _encode_cash_address(_P2PKH_VERSION, self.address.hash160, self.params)

    def script_address(self) -> bytes:
        return self.address.script_address()

    def is_for_net(self, params: Params) -> bool:
        return self.address.is_for_net(params)

    def bitcoin_address(self) -> btcutil.AddressPubKeyHash:
        return self.address

    def __str__(self) -> str:
        return self.encode_address()


@dataclass(frozen=True)
class AddressScriptHash:
    """A P2SH address rendered in the cashaddr format."""

    address: btcutil.AddressScriptHash
    params: Params

    def encode_address(self) -> str:
        return _encode_cash_address(_P2SH_VERSION, self.address.hash160, self.params)

    def script_address(self) -> bytes:
        return self.address.script_address()

    def is_for_net(self, params: Params) -> bool:
        return self.address.is_for_net(params)

    def bitcoin_address(self) -> btcutil.AddressScriptHash:
        return self.address

    def __str__(self) -> str:
        return self.encode_address()


CashAddress = Union[AddressLegacy, AddressPubKeyHash, AddressScriptHash]


def new_address_pub_key_hash(pkh: bytes, params: Params) -> AddressPubKeyHash:
    """A cashaddr P2PKH address for a 20-byte public key hash."""
    return AddressPubKeyHash(
        btcutil.AddressPubKeyHash(bytes(pkh), params.pub_key_hash_addr_id), params
    )


def new_address_pub_key(pk: bytes, params: Params) -> AddressPubKeyHash:
    """A cashaddr P2PKH address for a serialized public key."""
    return new_address_pub_key_hash(btcutil.hash160(bytes(pk)), params)


def new_address_script_hash(script: bytes, params: Params) -> AddressScriptHash:
    """A cashaddr P2SH address for a script."""
    return AddressScriptHash(btcutil.AddressScriptHash.from_script(bytes(script), params), params)


def new_address_script_hash_from_hash(script_hash: bytes, params: Params) -> AddressScriptHash:
    """A cashaddr P2SH address for a 20-byte script hash."""
    return AddressScriptHash(
        btcutil.AddressScriptHash(bytes(script_hash), params.script_hash_addr_id), params
    )


def address_from_raw_bytes(addr_bytes: bytes, params: Params) -> CashAddress:
    """Build an address object from the raw bytes of a Bitcoin Cash address."""
    addr_bytes = bytes(addr_bytes)
    if len(addr_bytes) - 1 == _RIPEMD160_SIZE:
        if addr_bytes[0] == _P2PKH_VERSION:
            return new_address_pub_key_hash(addr_bytes[1:21], params)
        if addr_bytes[0] == _P2SH_VERSION:
            return new_address_script_hash_from_hash(addr_bytes[1:21], params)
        raise UnknownAddressTypeError("unknown address type")
    return AddressLegacy(btcutil.decode_address(btcutil.base58_encode(addr_bytes), params))


@dataclass(frozen=True)
class AddressEncoder(Encoder):
    """Encodes raw Bitcoin Cash addresses for one network."""

    params: Params

    def encode_address(self, raw_addr: RawAddress) -> Address:
        raw = bytes(raw_addr)
        if len(raw) - 1 != _RIPEMD160_SIZE:
            return _encode_legacy_address(raw, self.params)
        if raw[0] not in (_P2PKH_VERSION, _P2SH_VERSION):
            raise UnknownAddressTypeError("unknown address type")
        try:
            encoded = _encode_cash_address(raw[0], raw[1:21], self.params)
        except AddressError as exc:
            raise AddressError(f"encoding: {exc}") from exc
        return Address(encoded)


@dataclass(frozen=True)
class AddressDecoder(Decoder):
    """Decodes cashaddr and legacy addresses of one network into raw bytes."""

    params: Params

    def decode_address(self, addr: Address) -> RawAddress:
        text = str(addr)
        try:
            legacy = btcutil.decode_address(text, self.params)
        except AddressError:
            legacy = None
        if legacy is not None:
            if not legacy.is_for_net(self.params):
                raise AddressError("address of different network")
            if isinstance(
                legacy,
                (btcutil.AddressPubKeyHash, btcutil.AddressScriptHash, btcutil.AddressPubKey),
            ):
                return _decode_legacy_address(text, self.params)
            if isinstance(
                legacy, (btcutil.AddressWitnessPubKeyHash, btcutil.AddressWitnessScriptHash)
            ):
                raise AddressError(
                    f"unsuported segwit bitcoin address type {type(legacy).__name__}"
                )
            raise AddressError(f"unsuported legacy bitcoin address type {type(legacy).__name__}")

        parts = text.split(":")
        if len(parts) != 1:
            text = parts[1]

        decoded = decode_string(text)
        if len(decoded) < _CHECKSUM_LENGTH or not verify_checksum(
            address_prefix(self.params), decoded
        ):
            raise ChecksumMismatchError("checksum mismatch")

        addr_bytes = btcutil.convert_bits(decoded[:-_CHECKSUM_LENGTH], 5, 8, False)
        if len(addr_bytes) - 1 != _RIPEMD160_SIZE:
            raise AddressError("decoded address is of unknown size")
        if addr_bytes[0] not in (_P2PKH_VERSION, _P2SH_VERSION):
            raise UnknownAddressTypeError("unknown address type")
        return RawAddress(addr_bytes)


class AddressEncodeDecoder(EncodeDecoder):
    """Encodes and decodes Bitcoin Cash addresses for one network."""

    def __init__(self, params: Params) -> None:
        self.params = params
        self.encoder = AddressEncoder(params)
        self.decoder = AddressDecoder(params)

    def encode_address(self, raw_addr: RawAddress) -> Address:
        return self.encoder.encode_address(raw_addr)

    def decode_address(self, addr: Address) -> RawAddress:
        return self.decoder.decode_address(addr)