"""Building, hashing and signing Bitcoin UTXO transactions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from multichain.api import utxo
from multichain.api.utxo import Input, Outpoint, Output, Recipient
from multichain.chain.bitcoin import btcutil
from multichain.chain.bitcoin.btcutil import AddressError, Params
from multichain.chain.bitcoin.txscript import (
    ScriptBuilder,
    SigHashType,
    TxSigHashes,
    calc_signature_hash,
    calc_witness_sig_hash,
    is_pay_to_witness_pub_key_hash,
    is_pay_to_witness_script_hash,
    pay_to_addr_script,
    serialize_signature,
)
from multichain.chain.bitcoin.wire import HASH_SIZE, MsgTx, OutPoint, TxIn, TxOut

VERSION = 2

_SIGNATURE_SIZE = 65


def _int64(value: int) -> int:
    low = value & 0xFFFFFFFFFFFFFFFF
    return low - (1 << 64) if low >= 1 << 63 else low


@dataclass(frozen=True)
class TxBuilder(utxo.TxBuilder):
    """Builds Bitcoin transactions for the network described by ``params``."""

    params: Params

    def build_tx(self, inputs: Sequence[Input], recipients: Sequence[Recipient]) -> "Tx":
        """Spend ``inputs`` to ``recipients``; the difference is paid as a fee."""
        msg_tx = MsgTx(version=VERSION)
        for inp in inputs:
            tx_hash = bytes(inp.hash[:HASH_SIZE]).ljust(HASH_SIZE, b"\x00")
            msg_tx.add_tx_in(TxIn(OutPoint(tx_hash, inp.index)))

        for recipient in recipients:
            addr = btcutil.decode_address(str(recipient.to), self.params)
            if not addr.is_for_net(self.params):
                raise AddressError("addr of a different network")
            script = pay_to_addr_script(addr)
            value = _int64(recipient.value)
            if value < 0:
                raise ValueError(f"expected value >= 0, got value {value}")
            msg_tx.add_tx_out(TxOut(value, script))

        return Tx(inputs, recipients, msg_tx)


class Tx(utxo.Tx):
    """A Bitcoin transaction built from UTXO inputs and recipients."""

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
            pub_key_script = txin.pub_key_script
            sig_script = txin.sig_script
            value = _int64(txin.value)
            if value < 0:
                raise ValueError(f"expected value >= 0, got value {value}")

            if sig_script is None:
                if is_pay_to_witness_pub_key_hash(pub_key_script):
                    digest = calc_witness_sig_hash(
                        pub_key_script, sig_hashes, SigHashType.ALL, self.msg_tx, index, value
                    )
                else:
                    digest = calc_signature_hash(
                        pub_key_script, SigHashType.ALL, self.msg_tx, index
                    )
            elif is_pay_to_witness_script_hash(pub_key_script):
                digest = calc_witness_sig_hash(
                    sig_script, sig_hashes, SigHashType.ALL, self.msg_tx, index, value
                )
            else:
                digest = calc_signature_hash(sig_script, SigHashType.ALL, self.msg_tx, index)
            digests.append(bytes(digest[:32]).ljust(32, b"\x00"))
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
            sig = serialize_signature(r, s) + bytes([SigHashType.ALL])
            pub_key_script = self._inputs[index].pub_key_script
            sig_script = self._inputs[index].sig_script
            tx_in = self.msg_tx.tx_in[index]

            if sig_script is None:
                if is_pay_to_witness_pub_key_hash(pub_key_script) or is_pay_to_witness_script_hash(
                    pub_key_script
                ):
                    tx_in.witness = [sig, pub_key]
                    continue
            elif is_pay_to_witness_script_hash(sig_script):
                tx_in.witness = [sig, pub_key, bytes(sig_script)]
                continue

            builder = ScriptBuilder().add_data(sig).add_data(pub_key)
            if sig_script is not None:
                builder.add_data(sig_script)
            tx_in.signature_script = builder.script()

        self.signed = True

    def serialize(self) -> bytes:
        return self.msg_tx.serialize()