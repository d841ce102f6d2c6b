"""
Mock settlement chain helpers.

WHAT: Fake transaction hashes and contract item ids
WHY: Escrow flows must run end to end without a wallet or RPC node
HOW: secrets-based 32-byte hex hashes; UUID bytes as the bytes16 item id
"""

import secrets
from uuid import UUID


def generate_mock_tx_hash() -> str:
    """`0x` followed by 64 lowercase hex characters."""
    return "0x" + secrets.token_hex(32)


def negotiation_item_id(negotiation_id: str) -> str:
    """
    The negotiation id as a 16-byte hex value.

    UUID ids map exactly to their 16 bytes; anything else is
    UTF-8 encoded and truncated or zero-padded to 16 bytes.
    """
    try:
        raw = UUID(negotiation_id).bytes
    except ValueError:
        raw = negotiation_id.encode("utf-8")[:16].ljust(16, b"\0")
    return "0x" + raw.hex()
