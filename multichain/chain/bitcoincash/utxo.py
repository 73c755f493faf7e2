"""Building, hashing and signing Bitcoin Cash UTXO transactions."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass

from multichain.api import utxo
from multichain.api.utxo import Input, Outpoint, Output, Recipient
from multichain.chain.bitcoin.btcutil import Params, double_sha256
from multichain.chain.bitcoin.txscript import (
    ScriptBuilder,
    SigHashType,
    TxSigHashes,
    pay_to_addr_script,
    serialize_signature,
)
from multichain.chain.bitcoin.wire import (
    HASH_SIZE,
    MsgTx,
    OutPoint,
    TxIn,
    TxOut,
    serialize_tx_out,
    write_var_bytes,
)
from multichain.chain.bitcoincash.address import AddressEncodeDecoder, address_from_raw_bytes

SIGHASH_FORK_ID = 0x40
SIGHASH_MASK = 0x1F
VERSION = 1

_SIGNATURE_SIZE = 65
_ZERO_HASH = bytes(32)


def _int64(value: int) -> int:
    low = value & 0xFFFFFFFFFFFFFFFF
    return low - (1 << 64) if low >= 1 << 63 else low


def calculate_bip143_sighash(
    sub_script: bytes,
    sig_hashes: TxSigHashes,
    hash_type: int,
    tx: MsgTx,
    idx: int,
    amt: int,
) -> bytes:
    """BIP-143 style digest of input ``idx``, with the fork id in the hash type."""
    if not 0 <= idx < len(tx.tx_in):
        raise IndexError(f"calculate_bip143_sighash: i {idx} with {len(tx.tx_in)} inputs")

    mask = hash_type & SIGHASH_MASK
    anyone_can_pay = bool(hash_type & SigHashType.ANY_ONE_CAN_PAY)
    single_or_none = mask in (SigHashType.SINGLE, SigHashType.NONE)

    parts = [struct.pack("<I", tx.version & 0xFFFFFFFF)]
    parts.append(_ZERO_HASH if anyone_can_pay else sig_hashes.hash_prev_outs)
    if not anyone_can_pay and not single_or_none:
        parts.append(sig_hashes.hash_sequence)
    else:
        parts.append(_ZERO_HASH)

    tx_in = tx.tx_in[idx]
    parts.append(tx_in.previous_out_point.serialize())
    parts.append(write_var_bytes(sub_script))
    parts.append(struct.pack("<Q", amt & 0xFFFFFFFFFFFFFFFF))
    parts.append(struct.pack("<I", tx_in.sequence))

    if not single_or_none:
        parts.append(sig_hashes.hash_outputs)
    elif mask == SigHashType.SINGLE and idx < len(tx.tx_out):
        parts.append(double_sha256(serialize_tx_out(tx.tx_out[idx])))
    else:
        parts.append(_ZERO_HASH)

    parts.append(struct.pack("<I", tx.lock_time))
    parts.append(struct.pack("<I", (hash_type | SIGHASH_FORK_ID) & 0xFFFFFFFF))
    return double_sha256(b"".join(parts))


@dataclass(frozen=True)
class TxBuilder(utxo.TxBuilder):
    """Builds Bitcoin Cash transactions for the network described by ``params``."""

    params: Params

    def build_tx(self, inputs: Sequence[Input], recipients: Sequence[Recipient]) -> "Tx":
        """Spend ``inputs`` to ``recipients``; the difference is paid as a fee."""
        msg_tx = MsgTx(version=VERSION)
        encode_decoder = AddressEncodeDecoder(self.params)

        for inp in inputs:
            tx_hash = bytes(inp.hash[:HASH_SIZE]).ljust(HASH_SIZE, b"\x00")
            msg_tx.add_tx_in(TxIn(OutPoint(tx_hash, inp.index)))

        for recipient in recipients:
            raw = encode_decoder.decode_address(recipient.to)
            addr = address_from_raw_bytes(raw, self.params)
            script = pay_to_addr_script(addr.bitcoin_address())
            value = _int64(recipient.value)
            if value < 0:
                raise ValueError(f"expected value >= 0, got value = {value}")
            msg_tx.add_tx_out(TxOut(value, script))

        return Tx(inputs, recipients, msg_tx)


class Tx(utxo.Tx):
    """A Bitcoin Cash transaction built from UTXO inputs and recipients."""

    def __init__(
        self, inputs: Sequence[Input], recipients: Sequence[Recipient], msg_tx: MsgTx
    ) -> None:
        self._inputs = list(inputs)
        self.recipients = list(recipients)
        self.msg_tx = msg_tx
        self.signed = False

    def hash(self) -> bytes:
        return self.msg_tx.tx_hash()

    def inputs(self) -> list[Input]:
        return list(self._inputs)

    def outputs(self) -> list[Output]:
        tx_hash = self.hash()
        outputs = []
        for index, tx_out in enumerate(self.msg_tx.tx_out):
            if tx_out.value < 0:
                raise ValueError(f"bad output {index}: value is less than zero")
            outputs.append(Output(Outpoint(tx_hash, index), tx_out.value, tx_out.pk_script))
        return outputs

    def sighashes(self) -> list[bytes]:
        sig_hashes = TxSigHashes.from_tx(self.msg_tx)
        digests = []
        for index, txin in enumerate(self._inputs):
            value = _int64(txin.value)
            if value < 0:
                raise ValueError(f"expected value >= 0, got value = {value}")
            sub_script = txin.pub_key_script if txin.sig_script is None else txin.sig_script
            digest = calculate_bip143_sighash(
                bytes(sub_script), sig_hashes, SigHashType.ALL, self.msg_tx, index, value
            )
            digests.append(digest)
        return digests

    def sign(self, signatures: Sequence[bytes], pub_key: bytes) -> None:
        if self.signed:
            raise ValueError("already signed")
        if len(signatures) != len(self.msg_tx.tx_in):
            raise ValueError(
                f"expected {len(self.msg_tx.tx_in)} signatures, "
                f"got {len(signatures)} signatures"
            )
        pub_key = bytes(pub_key)

        for index, rsv in enumerate(signatures):
            if len(rsv) != _SIGNATURE_SIZE:
                raise ValueError(f"expected {_SIGNATURE_SIZE}-byte signature, got {len(rsv)}")
            r = int.from_bytes(rsv[:32], "big")
            s = int.from_bytes(rsv[32:64], "big")
            sig = serialize_signature(r, s) + bytes([SigHashType.ALL | SIGHASH_FORK_ID])

            builder = ScriptBuilder().add_data(sig).add_data(pub_key)
            sig_script = self._inputs[index].sig_script
            if sig_script is not None:
                builder.add_data(sig_script)
            self.msg_tx.tx_in[index].signature_script = builder.script()

        self.signed = True

    def serialize(self) -> bytes:
        return self.msg_tx.serialize()