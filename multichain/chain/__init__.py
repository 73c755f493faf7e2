"""Implementations of the chain-independent interfaces for Bitcoin, Bitcoin Cash and Cosmos."""