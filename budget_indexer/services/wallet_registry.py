"""
Known-wallet registry.

In-memory set of budget wallet addresses. The store's wallet_registry
table is the durable copy; the set is rebuilt from it on startup and
after a failed batch.
"""

from collections.abc import Iterable

from budget_indexer.utils.validation import normalize_address


class KnownWalletRegistry:
    """Set of known budget wallet addresses (lowercase)."""

    def __init__(self, addresses: Iterable[str] = ()) -> None:
        self._wallets: set[str] = set()
        self.load(addresses)

    def contains(self, address: str | None) -> bool:
        """Check if an address is a known wallet."""
        if not address:
            return False
        return address.lower() in self._wallets

    def add(self, address: str) -> bool:
        """
        Add a wallet address.

        Returns:
            True if the address was not known before
        """
        normalized = normalize_address(address)
        if normalized in self._wallets:
            return False
        self._wallets.add(normalized)
        return True

    def all(self) -> frozenset[str]:
        """Snapshot of all known wallets."""
        return frozenset(self._wallets)

    def load(self, addresses: Iterable[str]) -> None:
        """Replace the contents with the given addresses."""
        self._wallets = {normalize_address(a) for a in addresses}

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.contains(address)

    def __len__(self) -> int:
        return len(self._wallets)
