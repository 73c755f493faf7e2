"""Bitcoin address primitives: hashing, base58check, bech32 and address types."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Union

from Crypto.Hash import RIPEMD160


class AddressError(ValueError):
    """An address could not be encoded or decoded."""


class ChecksumMismatchError(AddressError):
    """The checksum embedded in an address does not match its contents."""


class UnknownAddressTypeError(AddressError):
    """The address is well formed but of a type that is not recognised."""


@dataclass(frozen=True)
class Params:
    """Address-related parameters of a Bitcoin network."""

    name: str
    pub_key_hash_addr_id: int
    script_hash_addr_id: int
    bech32_hrp_segwit: str


MAIN_NET_PARAMS = Params("mainnet", 0x00, 0x05, "bc")
TEST_NET3_PARAMS = Params("testnet3", 0x6F, 0xC4, "tb")
REGRESSION_NET_PARAMS = Params("regtest", 0x6F, 0xC4, "bcrt")
SIM_NET_PARAMS = Params("simnet", 0x3F, 0x7B, "sb")

_KNOWN_NETWORKS = (MAIN_NET_PARAMS, TEST_NET3_PARAMS, REGRESSION_NET_PARAMS, SIM_NET_PARAMS)
_SEGWIT_PREFIXES = frozenset(p.bech32_hrp_segwit.lower() + "1" for p in _KNOWN_NETWORKS)

_HASH160_SIZE = 20


def hash160(data: bytes) -> bytes:
    """RIPEMD-160 of SHA-256 of ``data``."""
    return RIPEMD160.new(hashlib.sha256(data).digest()).digest()


def double_sha256(data: bytes) -> bytes:
    """SHA-256 applied twice to ``data``."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


# --- base58 -----------------------------------------------------------------

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_INDEX = {char: value for value, char in enumerate(_B58_ALPHABET)}


def base58_encode(data: bytes) -> str:
    """Encode bytes with the Bitcoin base58 alphabet."""
    data = bytes(data)
    stripped = data.lstrip(b"\x00")
    number = int.from_bytes(stripped, "big")
    digits = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(_B58_ALPHABET[remainder])
    return "1" * (len(data) - len(stripped)) + "".join(reversed(digits))


def base58_decode(text: str) -> bytes:
    """Decode a base58 string; raise ``AddressError`` on a bad character."""
    number = 0
    for char in text:
        try:
            number = number * 58 + _B58_INDEX[char]
        except KeyError:
            raise AddressError(f"invalid base58 character {char!r}") from None
    zeros = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big")
    return b"\x00" * zeros + body


def check_encode(payload: bytes, version: int) -> str:
    """Base58check-encode ``payload`` behind a one-byte ``version``."""
    if not 0 <= version <= 0xFF:
        raise AddressError(f"invalid version byte: {version}")
    body = bytes([version]) + bytes(payload)
    return base58_encode(body + double_sha256(body)[:4])


def check_decode(text: str) -> tuple[bytes, int]:
    """Decode a base58check string into ``(payload, version)``."""
    try:
        decoded = base58_decode(text)
    except AddressError as exc:
        raise AddressError(f"invalid format: {exc}") from exc
    if len(decoded) < 5:
        raise AddressError("invalid format: version and/or checksum bytes missing")
    body, checksum = decoded[:-4], decoded[-4:]
    if double_sha256(body)[:4] != checksum:
        raise ChecksumMismatchError("checksum mismatch")
    return body[1:], body[0]


# --- bech32 -----------------------------------------------------------------

_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_INDEX = {char: value for value, char in enumerate(_BECH32_CHARSET)}
_BECH32_GENERATORS = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)


def _bech32_polymod(values: Iterable[int]) -> int:
    checksum = 1
    for value in values:
        top = checksum >> 25
        checksum = ((checksum & 0x1FFFFFF) << 5) ^ value
        for bit, generator in enumerate(_BECH32_GENERATORS):
            if (top >> bit) & 1:
                checksum ^= generator
    return checksum


def _bech32_hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def convert_bits(data: Iterable[int], from_bits: int, to_bits: int, pad: bool) -> bytes:
    """Regroup a sequence of ``from_bits`` values into ``to_bits`` values."""
    if not (1 <= from_bits <= 8 and 1 <= to_bits <= 8):
        raise AddressError("only bit groups between 1 and 8 are supported")
    acc = 0
    bits = 0
    out = []
    max_value = (1 << to_bits) - 1
    acc_mask = (1 << (from_bits + to_bits - 1)) - 1
    for value in data:
        if value < 0 or value >> from_bits:
            raise AddressError(f"value {value} does not fit in {from_bits} bits")
        acc = ((acc << from_bits) | value) & acc_mask
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((acc >> bits) & max_value)
    if pad:
        if bits:
            out.append((acc << (to_bits - bits)) & max_value)
    elif bits >= from_bits or (acc << (to_bits - bits)) & max_value:
        raise AddressError("invalid incomplete group")
    return bytes(out)


def bech32_encode(hrp: str, data: Iterable[int]) -> str:
    """Encode 5-bit ``data`` with human-readable part ``hrp`` and a checksum."""
    values = list(data)
    if any(not 0 <= v < 32 for v in values):
        raise AddressError("bech32 data values must be 5-bit")
    polymod = _bech32_polymod(_bech32_hrp_expand(hrp) + values + [0] * 6) ^ 1
    checksum = [(polymod >> (5 * (5 - i))) & 31 for i in range(6)]
    return hrp + "1" + "".join(_BECH32_CHARSET[v] for v in values + checksum)


def bech32_decode(text: str) -> tuple[str, bytes]:
    """Decode a bech32 string into its human-readable part and 5-bit data."""
    if not 8 <= len(text) <= 90:
        raise AddressError(f"invalid bech32 string length {len(text)}")
    if any(not 33 <= ord(c) <= 126 for c in text):
        raise AddressError("invalid character in bech32 string")
    lower = text.lower()
    if text != lower and text != text.upper():
        raise AddressError("bech32 string has mixed case")
    separator = lower.rfind("1")
    if separator < 1 or separator + 7 > len(lower):
        raise AddressError("invalid bech32 separator index")
    hrp = lower[:separator]
    try:
        values = [_BECH32_INDEX[c] for c in lower[separator + 1 :]]
    except KeyError as exc:
        raise AddressError(f"invalid bech32 character {exc.args[0]!r}") from None
    if _bech32_polymod(_bech32_hrp_expand(hrp) + values) != 1:
        raise ChecksumMismatchError("bech32 checksum mismatch")
    return hrp, bytes(values[:-6])


def encode_segwit_address(hrp: str, version: int, program: bytes) -> str:
    """Encode a segwit witness program as a bech32 address."""
    if not 0 <= version <= 16:
        raise AddressError(f"invalid witness version {version}")
    data = bytes([version]) + convert_bits(program, 8, 5, True)
    encoded = bech32_encode(hrp, data)
    decoded_version, decoded_program = decode_segwit_address(hrp, encoded)
    if decoded_version != version or decoded_program != bytes(program):
        raise AddressError("invalid segwit address")
    return encoded


def decode_segwit_address(hrp: str, addr: str) -> tuple[int, bytes]:
    """Decode a bech32 segwit address into ``(version, program)``."""
    decoded_hrp, data = bech32_decode(addr)
    if decoded_hrp != hrp.lower():
        raise AddressError(f"invalid human-readable part {decoded_hrp!r}")
    if not data:
        raise AddressError("no witness version")
    version = data[0]
    if version > 16:
        raise AddressError(f"invalid witness version {version}")
    program = convert_bits(data[1:], 5, 8, False)
    if not 2 <= len(program) <= 40:
        raise AddressError(f"invalid witness program length {len(program)}")
    if version == 0 and len(program) not in (20, 32):
        raise AddressError(f"invalid witness program length {len(program)} for version 0")
    return version, program


# --- secp256k1 public keys --------------------------------------------------

_SECP256K1_P = 2**256 - 2**32 - 977


def _validate_pub_key(data: bytes) -> None:
    if not data:
        raise AddressError("empty public key")
    fmt = data[0]
    if fmt in (0x02, 0x03) and len(data) == 33:
        x = int.from_bytes(data[1:], "big")
        if x >= _SECP256K1_P:
            raise AddressError("public key x-coordinate out of range")
        rhs = (pow(x, 3, _SECP256K1_P) + 7) % _SECP256K1_P
        y = pow(rhs, (_SECP256K1_P + 1) // 4, _SECP256K1_P)
        if y * y % _SECP256K1_P != rhs:
            raise AddressError("public key is not on the secp256k1 curve")
    elif fmt in (0x04, 0x06, 0x07) and len(data) == 65:
        x = int.from_bytes(data[1:33], "big")
        y = int.from_bytes(data[33:], "big")
        if x >= _SECP256K1_P or y >= _SECP256K1_P:
            raise AddressError("public key coordinate out of range")
        if (y * y - pow(x, 3, _SECP256K1_P) - 7) % _SECP256K1_P:
            raise AddressError("public key is not on the secp256k1 curve")
        if fmt != 0x04 and (y & 1) != (fmt & 1):
            raise AddressError("hybrid public key has the wrong y parity")
    else:
        raise AddressError(f"invalid public key format {fmt:#04x} with length {len(data)}")


def _check_net_id(net_id: int) -> None:
    if not 0 <= net_id <= 0xFF:
        raise AddressError(f"invalid network id {net_id}")


# --- address types ----------------------------------------------------------


@dataclass(frozen=True)
class AddressPubKeyHash:
    """A pay-to-pubkey-hash address."""

    hash160: bytes
    net_id: int

    def __post_init__(self) -> None:
        if len(self.hash160) != _HASH160_SIZE:
            raise AddressError("pkHash must be 20 bytes")
        _check_net_id(self.net_id)
        object.__setattr__(self, "hash160", bytes(self.hash160))

    def encode_address(self) -> str:
        return check_encode(self.hash160, self.net_id)

    def script_address(self) -> bytes:
        return self.hash160

    def is_for_net(self, params: Params) -> bool:
        return self.net_id == params.pub_key_hash_addr_id


@dataclass(frozen=True)
class AddressScriptHash:
    """A pay-to-script-hash address."""

    hash160: bytes
    net_id: int

    def __post_init__(self) -> None:
        if len(self.hash160) != _HASH160_SIZE:
            raise AddressError("scriptHash must be 20 bytes")
        _check_net_id(self.net_id)
        object.__setattr__(self, "hash160", bytes(self.hash160))

    @classmethod
    def from_script(cls, script: bytes, params: Params) -> "AddressScriptHash":
        """The P2SH address of ``script`` on the network of ``params``."""
        return cls(hash160(script), params.script_hash_addr_id)

    def encode_address(self) -> str:
        return check_encode(self.hash160, self.net_id)

    def script_address(self) -> bytes:
        return self.hash160

    def is_for_net(self, params: Params) -> bool:
        return self.net_id == params.script_hash_addr_id


@dataclass(frozen=True)
class AddressPubKey:
    """A pay-to-pubkey address holding a serialized secp256k1 public key."""

    serialized_pub_key: bytes
    pub_key_hash_id: int

    def __post_init__(self) -> None:
        _validate_pub_key(bytes(self.serialized_pub_key))
        _check_net_id(self.pub_key_hash_id)
        object.__setattr__(self, "serialized_pub_key", bytes(self.serialized_pub_key))

    def address_pub_key_hash(self) -> AddressPubKeyHash:
        return AddressPubKeyHash(hash160(self.serialized_pub_key), self.pub_key_hash_id)

    def encode_address(self) -> str:
        return self.address_pub_key_hash().encode_address()

    def script_address(self) -> bytes:
        return self.serialized_pub_key

    def is_for_net(self, params: Params) -> bool:
        return self.pub_key_hash_id == params.pub_key_hash_addr_id


@dataclass(frozen=True)
class AddressWitnessPubKeyHash:
    """A pay-to-witness-pubkey-hash (bech32) address."""

    hrp: str
    witness_version: int
    witness_program: bytes

    def __post_init__(self) -> None:
        if len(self.witness_program) != 20:
            raise AddressError("witness program must be 20 bytes for p2wpkh")
        object.__setattr__(self, "hrp", self.hrp.lower())
        object.__setattr__(self, "witness_program", bytes(self.witness_program))

    def encode_address(self) -> str:
        return encode_segwit_address(self.hrp, self.witness_version, self.witness_program)

    def script_address(self) -> bytes:
        return self.witness_program

    def is_for_net(self, params: Params) -> bool:
        return self.hrp == params.bech32_hrp_segwit


@dataclass(frozen=True)
class AddressWitnessScriptHash:
    """A pay-to-witness-script-hash (bech32) address."""

    hrp: str
    witness_version: int
    witness_program: bytes

    def __post_init__(self) -> None:
        if len(self.witness_program) != 32:
            raise AddressError("witness program must be 32 bytes for p2wsh")
        object.__setattr__(self, "hrp", self.hrp.lower())
        object.__setattr__(self, "witness_program", bytes(self.witness_program))

    def encode_address(self) -> str:
        return encode_segwit_address(self.hrp, self.witness_version, self.witness_program)

    def script_address(self) -> bytes:
        return self.witness_program

    def is_for_net(self, params: Params) -> bool:
        return self.hrp == params.bech32_hrp_segwit


_AnyAddress = Union[
    AddressPubKeyHash,
    AddressScriptHash,
    AddressPubKey,
    AddressWitnessPubKeyHash,
    AddressWitnessScriptHash,
]


def decode_address(addr: str, params: Params) -> _AnyAddress:
    """Decode a string address; base58 addresses are read with ``params``."""
    separator = addr.rfind("1")
    if separator > 1:
        prefix = addr[: separator + 1].lower()
        if prefix in _SEGWIT_PREFIXES:
            hrp = prefix[:-1]
            version, program = decode_segwit_address(hrp, addr)
            if version != 0:
                raise AddressError(f"unsupported witness version: {version}")
            if len(program) == 20:
                return AddressWitnessPubKeyHash(hrp, version, program)
            if len(program) == 32:
                return AddressWitnessScriptHash(hrp, version, program)
            raise AddressError(f"unsupported witness program length: {len(program)}")

    if len(addr) in (130, 66):
        try:
            serialized = bytes.fromhex(addr)
        except ValueError as exc:
            raise AddressError(f"invalid hex public key: {exc}") from exc
        return AddressPubKey(serialized, params.pub_key_hash_addr_id)

    try:
        decoded, net_id = check_decode(addr)
    except ChecksumMismatchError:
        raise
    except AddressError as exc:
        raise AddressError("decoded address is of unknown format") from exc
    if len(decoded) != _HASH160_SIZE:
        raise AddressError("decoded address is of unknown size")
    is_p2pkh = net_id == params.pub_key_hash_addr_id
    is_p2sh = net_id == params.script_hash_addr_id
    if is_p2pkh and is_p2sh:
        raise AddressError("address collision")
    if is_p2pkh:
        return AddressPubKeyHash(decoded, net_id)
    if is_p2sh:
        return AddressScriptHash(decoded, net_id)
    raise UnknownAddressTypeError("unknown address type")