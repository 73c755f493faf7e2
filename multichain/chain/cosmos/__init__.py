"""Cosmos bech32 account addresses and gas estimation."""