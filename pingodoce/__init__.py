"""Pingo Doce grocery ledger: receipt sync, spending analytics and diet health scoring."""

__version__ = "0.1.0"
