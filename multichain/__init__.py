"""Common interfaces plus Bitcoin, Bitcoin Cash and Cosmos address, transaction and gas support."""

__version__ = "0.1.0"