"""Address and hash normalization."""

from eth_utils import is_address, to_checksum_address
from hexbytes import HexBytes


def normalize_address(address: str) -> str:
    """
    Normalize an EVM address to its lowercase storage form.

    Args:
        address: Address in any case

    Returns:
        Lowercase 0x-prefixed address

    Raises:
        ValueError: If the value is not a 20-byte hex address
    """
    if not isinstance(address, str) or not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return address.lower()


def checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksum form for RPC calls."""
    return to_checksum_address(address)


def to_hex_str(value: bytes | str) -> str:
    """Render a hash (HexBytes or str) as a lowercase 0x-prefixed string."""
    if isinstance(value, str):
        value = value.lower()
        return value if value.startswith("0x") else f"0x{value}"
    return "0x" + HexBytes(value).hex().removeprefix("0x")
