"""
Unit Tests for hash chain helpers
Tests for: canonical payload, digest determinism, chain linking, chain validation
"""
import hashlib
import json
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from app.models.certificate import GENESIS_PREVIOUS_HASH
from app.services.hash_chain import (
    HashPayload,
    compute_certificate_hash,
    generate_verification_code,
    hashes_match,
    next_chain_link,
    recompute_hash,
    validate_chain,
)


ISSUED_AT = datetime(2025, 3, 2, 10, 15, 30, 123456)


def make_payload(**overrides) -> HashPayload:
    values = dict(
        student_id="S1",
        activity_id="A1",
        title="Hackathon Winner",
        event_date=date(2025, 3, 1),
        timestamp=ISSUED_AT,
    )
    values.update(overrides)
    return HashPayload(**values)


def make_block(block_number, previous_hash, activity_id, title="Hackathon Winner"):
    """Stand-in for a persisted Certificate row"""
    block = SimpleNamespace(
        certificate_id=f"CERT-{block_number}",
        student_id="S1",
        activity_id=activity_id,
        title=title,
        event_date=date(2025, 3, 1),
        issued_at=ISSUED_AT,
        block_number=block_number,
        previous_hash=previous_hash,
    )
    block.certificate_hash = recompute_hash(block)
    return block


class TestCanonicalPayload:
    """Test the hashed JSON document"""

    def test_key_order_is_fixed(self):
        """Test keys appear in the documented order"""
        canonical = make_payload().canonical()

        assert list(json.loads(canonical).keys()) == ["studentId", "activityId", "title", "date", "timestamp"]

    def test_values_are_serialized_as_iso(self):
        """Test date and timestamp serialization"""
        document = json.loads(make_payload().canonical())

        assert document["date"] == "2025-03-01"
        assert document["timestamp"] == "2025-03-02T10:15:30.123456"

    def test_timestamp_keeps_microseconds_when_zero(self):
        """Test whole-second timestamps still serialize six fractional digits"""
        document = json.loads(make_payload(timestamp=datetime(2025, 3, 2, 10, 0, 0)).canonical())

        assert document["timestamp"] == "2025-03-02T10:00:00.000000"


class TestComputeHash:
    """Test SHA-256 digest of the payload"""

    def test_hash_matches_sha256_of_canonical(self):
        payload = make_payload()

        expected = hashlib.sha256(payload.canonical().encode("utf-8")).hexdigest()

        assert compute_certificate_hash(payload) == expected

    def test_hash_is_deterministic(self):
        """Test identical inputs give identical digests"""
        assert compute_certificate_hash(make_payload()) == compute_certificate_hash(make_payload())

    def test_hash_is_64_lowercase_hex(self):
        digest = compute_certificate_hash(make_payload())

        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    @pytest.mark.parametrize("field, value", [
        ("student_id", "S2"),
        ("activity_id", "A2"),
        ("title", "Hackathon Winner!"),
        ("event_date", date(2025, 3, 2)),
        ("timestamp", datetime(2025, 3, 2, 10, 15, 30, 123457)),
    ])
    def test_any_field_change_changes_hash(self, field, value):
        """Test tamper sensitivity on every hashed field"""
        original = compute_certificate_hash(make_payload())

        assert compute_certificate_hash(make_payload(**{field: value})) != original


class TestHashesMatch:
    def test_equal_digests_match(self):
        digest = compute_certificate_hash(make_payload())
        assert hashes_match(digest, digest) is True

    def test_missing_values_never_match(self):
        assert hashes_match(None, None) is False
        assert hashes_match("", "") is False
        assert hashes_match("abc", None) is False


class TestChainLinking:
    """Test block numbering and previous-hash pointers"""

    def test_first_certificate_is_genesis(self):
        link = next_chain_link(None)

        assert link.block_number == 1
        assert link.previous_hash == GENESIS_PREVIOUS_HASH == "0"

    def test_next_block_points_at_previous_hash(self):
        first = make_block(1, GENESIS_PREVIOUS_HASH, "A1")

        link = next_chain_link(first)

        assert link.block_number == 2
        assert link.previous_hash == first.certificate_hash


class TestValidateChain:
    """Test whole-chain consistency checks"""

    def test_valid_chain(self):
        first = make_block(1, GENESIS_PREVIOUS_HASH, "A1")
        second = make_block(2, first.certificate_hash, "A2")

        assert validate_chain([first, second]) == []

    def test_empty_chain_is_valid(self):
        assert validate_chain([]) == []

    def test_broken_link_reported(self):
        first = make_block(1, GENESIS_PREVIOUS_HASH, "A1")
        second = make_block(2, "f" * 64, "A2")

        errors = validate_chain([first, second])

        assert len(errors) == 1
        assert "previous hash" in errors[0]

    def test_gap_in_block_numbers_reported(self):
        first = make_block(1, GENESIS_PREVIOUS_HASH, "A1")
        third = make_block(3, first.certificate_hash, "A3")

        errors = validate_chain([first, third])

        assert any("expected 2" in e for e in errors)

    def test_tampered_contents_reported(self):
        first = make_block(1, GENESIS_PREVIOUS_HASH, "A1")
        first.title = "Hackathon Runner-up"

        errors = validate_chain([first])

        assert errors == ["CERT-1: stored hash does not match contents"]


class TestVerificationCode:
    def test_code_format(self):
        code = generate_verification_code()

        assert len(code) == 12
        assert code == code.upper()
        int(code, 16)

    def test_codes_are_random(self):
        assert len({generate_verification_code() for _ in range(50)}) == 50
