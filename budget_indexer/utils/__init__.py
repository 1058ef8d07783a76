"""Shared helpers for the indexer."""
