"""Chain-independent interfaces: addresses, contract calldata, accounts, UTXOs and gas."""