"""Types and interfaces for chains that use a UTXO-based model."""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from multichain.api.address import Address

_MAX_U32 = (1 << 32) - 1
_MAX_U256 = (1 << 256) - 1


def _check_range(name: str, value: int, maximum: int) -> None:
    if not 0 <= value <= maximum:
        raise ValueError(f"{name} out of range: {value}")


def _encode_bytes(data: bytes | None) -> str | None:
    return None if data is None else base64.b64encode(data).decode("ascii")


def _decode_bytes(text: str | None) -> bytes | None:
    if text is None:
        return None
    try:
        return base64.b64decode(text, validate=True)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid base64 data: {exc}") from exc


def _decode_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"invalid integer: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid integer: {value!r}") from exc


@dataclass(frozen=True)
class Outpoint:
    """Identifies one output produced by a transaction."""

    hash: bytes
    index: int

    def __post_init__(self) -> None:
        _check_range("index", self.index, _MAX_U32)

    def to_dict(self) -> dict[str, Any]:
        return {"hash": _encode_bytes(self.hash), "index": self.index}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Outpoint":
        return cls(
            hash=_decode_bytes(data["hash"]) or b"",
            index=_decode_int(data["index"]),
        )


@dataclass(frozen=True)
class Output:
    """A transaction output and the script required to spend it."""

    outpoint: Outpoint
    value: int
    pub_key_script: bytes

    def __post_init__(self) -> None:
        _check_range("value", self.value, _MAX_U256)

    @property
    def hash(self) -> bytes:
        return self.outpoint.hash

    @property
    def index(self) -> int:
        return self.outpoint.index

    def to_dict(self) -> dict[str, Any]:
        return {
            "outpoint": self.outpoint.to_dict(),
            "value": str(self.value),
            "pubKeyScript": _encode_bytes(self.pub_key_script),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Output":
        return cls(
            outpoint=Outpoint.from_dict(data["outpoint"]),
            value=_decode_int(data["value"]),
            pub_key_script=_decode_bytes(data["pubKeyScript"]) or b"",
        )


@dataclass(frozen=True)
class Input:
    """An existing output to be consumed, with an optional signature script."""

    output: Output
    sig_script: bytes | None = None

    @property
    def outpoint(self) -> Outpoint:
        return self.output.outpoint

    @property
    def hash(self) -> bytes:
        return self.output.hash

    @property
    def index(self) -> int:
        return self.output.index

    @property
    def value(self) -> int:
        return self.output.value

    @property
    def pub_key_script(self) -> bytes:
        return self.output.pub_key_script

    def to_dict(self) -> dict[str, Any]:
        return {
            "output": self.output.to_dict(),
            "sigScript": _encode_bytes(self.sig_script),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Input":
        return cls(
            output=Output.from_dict(data["output"]),
            sig_script=_decode_bytes(data.get("sigScript")),
        )


@dataclass(frozen=True)
class Recipient:
    """An address and the amount a transaction will send to it."""

    to: Address
    value: int

    def __post_init__(self) -> None:
        _check_range("value", self.value, _MAX_U256)
        if not isinstance(self.to, Address):
            object.__setattr__(self, "to", Address(self.to))

    def to_dict(self) -> dict[str, Any]:
        return {"to": str(self.to), "value": str(self.value)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Recipient":
        return cls(to=Address(data["to"]), value=_decode_int(data["value"]))


class Tx(ABC):
    """A UTXO-based transaction."""

    @abstractmethod
    def hash(self) -> bytes:
        """Hash that uniquely identifies the transaction."""

    @abstractmethod
    def inputs(self) -> list[Input]:
        """Inputs consumed by the transaction."""

    @abstractmethod
    def outputs(self) -> list[Output]:
        """Outputs produced by the transaction."""

    @abstractmethod
    def sighashes(self) -> list[bytes]:
        """32-byte digests that must be signed before submission."""

    @abstractmethod
    def sign(self, signatures: Sequence[bytes], pub_key: bytes) -> None:
        """Inject 65-byte signatures and the signer's serialized public key."""

    @abstractmethod
    def serialize(self) -> bytes:
        """Serialize the transaction into the form submitted to the chain."""


class TxBuilder(ABC):
    """Builds UTXO-based transactions."""

    @abstractmethod
    def build_tx(self, inputs: Sequence[Input], recipients: Sequence[Recipient]) -> Tx:
        """Build an unsigned transaction spending ``inputs`` to ``recipients``."""


class Client(ABC):
    """Talks to a UTXO-based chain over RPC."""

    @abstractmethod
    def latest_block(self) -> int:
        """Height of the longest chain."""

    @abstractmethod
    def output(self, outpoint: Outpoint) -> tuple[Output, int]:
        """The output at ``outpoint`` and its confirmations, spent or not."""

    @abstractmethod
    def unspent_output(self, outpoint: Outpoint) -> tuple[Output, int]:
        """The unspent output at ``outpoint``; raise if it has been spent."""

    @abstractmethod
    def submit_tx(self, tx: Tx) -> None:
        """Submit the transaction; raise if it is invalid or cannot be sent."""