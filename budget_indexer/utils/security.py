"""
Log masking helpers.

Keeps full addresses and hashes out of log files.
"""


def mask_address(address: str | None) -> str:
    """
    Mask wallet address for logging: 0x1234...5678

    Args:
        address: Wallet address to mask

    Returns:
        Masked address showing first 6 and last 4 characters

    Examples:
        >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
        '0x1234...5678'
        >>> mask_address(None)
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_tx_hash(tx_hash: str | None) -> str:
    """Mask transaction hash for logging: first 10 and last 6 characters."""
    if not tx_hash or len(tx_hash) < 16:
        return "***"
    return f"{tx_hash[:10]}...{tx_hash[-6:]}"
