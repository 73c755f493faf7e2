"""Encoding and decoding of Bitcoin addresses to and from raw bytes."""

from __future__ import annotations

from dataclasses import dataclass

from multichain.api.address import Address, Decoder, EncodeDecoder, Encoder, RawAddress
from multichain.chain.bitcoin import btcutil
from multichain.chain.bitcoin.btcutil import (
    AddressError,
    AddressPubKeyHash,
    AddressScriptHash,
    AddressWitnessPubKeyHash,
    AddressWitnessScriptHash,
    Params,
)


@dataclass(frozen=True)
class AddressEncoder(Encoder):
    """Encodes raw Bitcoin addresses for one network."""

    params: Params

    def encode_address(self, raw_addr: RawAddress) -> Address:
        raw = bytes(raw_addr)
        if len(raw) == 25:
            return self._encode_base58(raw)
        if len(raw) in (21, 33):
            return self._encode_bech32(raw)
        raise AddressError(f"non-exhaustive pattern: address length {len(raw)}")

    def _encode_base58(self, raw: bytes) -> Address:
        encoded = btcutil.base58_encode(raw)
        btcutil.decode_address(encoded, self.params)
        return Address(encoded)

    def _encode_bech32(self, raw: bytes) -> Address:
        hrp = self.params.bech32_hrp_segwit.lower()
        if len(raw) == 21:
            addr = AddressWitnessPubKeyHash(hrp, 0, raw[1:])
        else:
            addr = AddressWitnessScriptHash(hrp, 0, raw[1:])
        return Address(addr.encode_address())


@dataclass(frozen=True)
class AddressDecoder(Decoder):
    """Decodes Bitcoin addresses of one network into raw bytes."""

    params: Params

    def decode_address(self, addr: Address) -> RawAddress:
        text = str(addr)
        for char in text:
            if ord(char) > 255:
                raise AddressError(f"invalid address: bad character {ord(char)}")
        try:
            decoded = btcutil.decode_address(text, self.params)
        except AddressError as exc:
            raise AddressError(f"decode address: {exc}") from exc
        if not decoded.is_for_net(self.params):
            raise AddressError("address of different network")

        if isinstance(decoded, (AddressPubKeyHash, AddressScriptHash)):
            return RawAddress(btcutil.base58_decode(text))
        if isinstance(decoded, (AddressWitnessPubKeyHash, AddressWitnessScriptHash)):
            return RawAddress(bytes([decoded.witness_version]) + decoded.witness_program)
        raise AddressError(f"non-exhaustive pattern: address {type(decoded).__name__}")


class AddressEncodeDecoder(EncodeDecoder):
    """Encodes and decodes Bitcoin addresses for one network."""

    def __init__(self, params: Params) -> None:
        self.params = params
        self.encoder = AddressEncoder(params)
        self.decoder = AddressDecoder(params)

    def encode_address(self, raw_addr: RawAddress) -> Address:
        return self.encoder.encode_address(raw_addr)

    def decode_address(self, addr: Address) -> RawAddress:
        return self.decoder.decode_address(addr)