# multichain

A library of common interfaces for blockchain addresses, transactions and gas
estimation. It also has implementations for Bitcoin, Bitcoin Cash and Cosmos.

## Interfaces

- `multichain.api.address`: `Address` (a `str`) and `RawAddress` (a `bytes`).
  Each has `size_hint()`, `marshal()` and `unmarshal(data)`, which use a 4-byte
  big-endian length prefix. The module also defines the abstract `Encoder`,
  `Decoder` and `EncodeDecoder`.
- `multichain.api.contract`: `CallData` (length-prefixed bytes) and the abstract
  `Caller`.
- `multichain.api.utxo`: the frozen dataclasses `Outpoint`, `Output`, `Input`
  and `Recipient`. Each has `to_dict()` and `from_dict(data)`. In the dict form,
  bytes are base64 and values are decimal strings. The module also defines the
  abstract `Tx`, `TxBuilder` and `Client`.
- `multichain.api.account`: the abstract `Tx`, `TxBuilder` and `Client` for
  account-based chains.
- `multichain.api.gas`: the abstract `Estimator`, whose `estimate_gas()` returns
  `(gas_price, gas_cap)`.

## Bitcoin

`multichain.chain.bitcoin` is split into these modules:

- `btcutil`: network parameters (`MAIN_NET_PARAMS`, `TEST_NET3_PARAMS`,
  `REGRESSION_NET_PARAMS`, `SIM_NET_PARAMS`). It also has base58/base58check,
  bech32 and segwit encoding, `hash160`, `double_sha256`, the address types
  (`AddressPubKeyHash`, `AddressScriptHash`, `AddressPubKey`,
  `AddressWitnessPubKeyHash`, `AddressWitnessScriptHash`) and
  `decode_address(addr, params)`. Errors derive from `AddressError`, a
  subclass of `ValueError`.
- `address`: `AddressEncoder`, `AddressDecoder` and `AddressEncodeDecoder`.
  A raw address of 25 bytes is a base58 P2PKH or P2SH address. A raw address of
  21 or 33 bytes is a witness version byte followed by a P2WPKH or P2WSH
  program.
- `wire`: `OutPoint`, `TxIn`, `TxOut` and `MsgTx`, which handle serialization
  with and without witness data.
- `txscript`: `ScriptBuilder`, `pay_to_addr_script`, `TxSigHashes`,
  `calc_signature_hash` (legacy), `calc_witness_sig_hash` (BIP-143) and
  `serialize_signature` (DER, low-S).
- `utxo`: `TxBuilder(params)` and `Tx`.
- `gas`: `GasEstimator` and `GasEstimationError`.

```python
from multichain.api.address import Address
from multichain.chain.bitcoin.address import AddressEncodeDecoder
from multichain.chain.bitcoin.btcutil import MAIN_NET_PARAMS, AddressPubKeyHash, hash160

codec = AddressEncodeDecoder(MAIN_NET_PARAMS)
addr = Address(
    AddressPubKeyHash(hash160(b"example"), MAIN_NET_PARAMS.pub_key_hash_addr_id).encode_address()
)
raw = codec.decode_address(addr)          # 25 bytes: version, hash, checksum
assert codec.encode_address(raw) == addr
```

### Building and signing a transaction

```python
from multichain.api.utxo import Input, Outpoint, Output, Recipient
from multichain.chain.bitcoin.utxo import TxBuilder

inputs = [Input(Output(Outpoint(prev_tx_hash, 0), 100_000, prev_pub_key_script))]
recipients = [Recipient(to_address, 90_000)]

tx = TxBuilder(params).build_tx(inputs, recipients)
digests = tx.sighashes()                  # one 32-byte digest per input
tx.sign(signatures, serialized_pub_key)   # 65-byte r || s || v signatures
raw_tx = tx.serialize()
```

The input and the recipient values must sum so that the difference is the fee.

`sign()` puts a witness on inputs that spend P2WPKH or P2WSH scripts. On all
other inputs it puts a signature script. A transaction can be signed only once.
`sign()` raises `ValueError` on a second call, and also when the number of
signatures differs from the number of inputs.

### Gas estimation

`GasEstimator(client, num_blocks, fallback_gas)` calls
`client.estimate_smart_fee(num_blocks)`. That call returns a fee rate in BTC per
kilobyte, which the estimator converts to satoshis per byte, rounded up. It
returns the result as both price and cap. If the client raises, or returns a
non-positive rate, the estimator raises `GasEstimationError`. The fallback value
is available as `error.fallback`.

## Bitcoin Cash

`multichain.chain.bitcoincash.address` encodes and decodes CashAddr addresses
with the prefixes `bitcoincash`, `bchtest` and `bchreg`. It also accepts legacy
base58 P2PKH/P2SH addresses. A decoder accepts CashAddr strings with or without
the `prefix:` part.

The module also provides the following:

- the address types `AddressPubKeyHash`, `AddressScriptHash` and
  `AddressLegacy`
- the constructors `new_address_pub_key_hash`, `new_address_pub_key`,
  `new_address_script_hash`, `new_address_script_hash_from_hash` and
  `address_from_raw_bytes`
- the checksum helpers `poly_mod`, `append_checksum`, `verify_checksum`,
  `encode_prefix`, `encode_to_string`, `decode_string` and `address_prefix`

`multichain.chain.bitcoincash.utxo` has `TxBuilder` and `Tx`. They sign every
input with a BIP-143 digest (`calculate_bip143_sighash`) and
`SIGHASH_ALL | SIGHASH_FORK_ID`. `multichain.chain.bitcoincash.gas.GasEstimator`
takes a client and a fallback value. It calls `client.estimate_fee_legacy(0)`
and converts the result in the same way as the Bitcoin estimator.

## Cosmos

`multichain.chain.cosmos.address` has `AddressEncoder`, `AddressDecoder` and
`AddressEncodeDecoder`, which encode bech32 account addresses. The
human-readable prefix defaults to `cosmos`. It also has `Address`, a `bytes`
whose `str()` is its bech32 form. `multichain.chain.cosmos.gas.GasEstimator`
always returns the gas-per-byte it was built with.

## What this package does not do

- It has no RPC clients. Nothing here talks to a node. Gas estimators take any
  object with the fee method they call. The `Client` interfaces in
  `multichain.api` are abstract.
- It does not create or hold private keys, and it does not produce signatures.
  Digests must be signed elsewhere.
- It has no implementation of the account-based interfaces. For Cosmos it covers
  only addresses and gas estimation, not transactions.
- It has no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```