"""Interfaces for chains that use an account-based model."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from multichain.api.address import Address
from multichain.api.contract import CallData


class Tx(ABC):
    """An account-based transaction."""

    @abstractmethod
    def hash(self) -> bytes:
        """Hash that uniquely identifies the transaction."""

    @abstractmethod
    def from_address(self) -> Address:
        """Address from which value is sent."""

    @abstractmethod
    def to_address(self) -> Address:
        """Address to which value is sent."""

    @abstractmethod
    def value(self) -> int:
        """Value sent from one address to another."""

    @abstractmethod
    def nonce(self) -> int:
        """Nonce ordering this transaction among the sender's transactions."""

    @abstractmethod
    def payload(self) -> CallData:
        """Arbitrary data associated with the transaction."""

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
    """Builds account-based transactions."""

    @abstractmethod
    def build_tx(
        self,
        from_pub_key: bytes,
        to: Address,
        value: int,
        nonce: int,
        gas_limit: int,
        gas_price: int,
        gas_cap: int,
        payload: bytes,
    ) -> Tx:
        """Build an unsigned transaction."""


class Client(ABC):
    """Talks to an account-based chain over RPC."""

    @abstractmethod
    def latest_block(self) -> int:
        """Number of the latest block."""

    @abstractmethod
    def account_balance(self, addr: Address) -> int:
        """Current balance of the account."""

    @abstractmethod
    def account_nonce(self, addr: Address) -> int:
        """Nonce to use when building the account's next transaction."""

    @abstractmethod
    def tx(self, tx_hash: bytes) -> tuple[Tx, int]:
        """The transaction with the given hash and its confirmation count."""

    @abstractmethod
    def submit_tx(self, tx: Tx) -> None:
        """Submit the transaction; raise if it is invalid or cannot be sent."""