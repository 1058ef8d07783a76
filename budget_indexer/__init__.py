"""
Budget Wallet Event Indexer.

Indexes factory, budget wallet and token events from an EVM chain into a
relational store and keeps a resumable block checkpoint.
"""

__version__ = "0.1.0"
