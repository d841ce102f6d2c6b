"""
Unit tests for mock settlement helpers.

WHAT: Test mock transaction hashes and contract item ids
WHY: Escrow records need well-formed identifiers without a real chain
HOW: Check formats directly
"""

import re

import pytest

from agentmarket.services.mock_chain import generate_mock_tx_hash, negotiation_item_id

HEX_32_BYTES = re.compile(r"^0x[0-9a-f]{64}$")
HEX_16_BYTES = re.compile(r"^0x[0-9a-f]{32}$")


@pytest.mark.unit
class TestMockChain:
    """Test mock chain helpers."""

    def test_tx_hash_format(self):
        assert HEX_32_BYTES.match(generate_mock_tx_hash())

    def test_tx_hashes_unique(self):
        assert len({generate_mock_tx_hash() for _ in range(20)}) == 20

    def test_uuid_item_id_is_its_bytes(self):
        item_id = negotiation_item_id("12345678-1234-5678-1234-567812345678")
        assert item_id == "0x12345678123456781234567812345678"

    def test_short_id_zero_padded(self):
        item_id = negotiation_item_id("neg-1")
        assert HEX_16_BYTES.match(item_id)
        assert item_id == "0x" + b"neg-1".hex() + "00" * 11

    def test_long_id_truncated(self):
        item_id = negotiation_item_id("x" * 40)
        assert item_id == "0x" + ("78" * 16)
