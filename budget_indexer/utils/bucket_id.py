"""
Bucket identifier derivation.

Wallet contracts address buckets by name in their events. Rows in the
buckets table are keyed by a numeric id derived from that name, so the
derivation must stay stable for as long as data indexed with it exists.
"""

from eth_utils import keccak

# Bump only together with a data migration that rewrites buckets.bucket_id
BUCKET_ID_VERSION = 1

_ID_BYTES = 8


def derive_bucket_id(name: str) -> int:
    """
    Derive the numeric bucket id for a bucket name.

    Takes the first 8 bytes of keccak256(utf8(name)) as a big-endian
    unsigned integer.

    Args:
        name: Bucket name as emitted by the wallet contract

    Returns:
        Bucket id (0 <= id < 2**64)
    """
    digest = keccak(text=name)
    return int.from_bytes(digest[:_ID_BYTES], "big")
