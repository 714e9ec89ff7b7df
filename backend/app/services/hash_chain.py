"""
Hash Chain - content hashing and per-student chain linking for certificates.

Each certificate stores a SHA-256 digest over a canonical JSON payload built
from its own persisted columns, plus the digest of the student's previous
certificate. Verification recomputes the digest from the stored row, so the
payload must only ever contain values that round-trip through the database.

The chain proves self-consistency of stored rows. It is not anchored
anywhere outside the database.
"""

import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.certificate import Certificate, GENESIS_PREVIOUS_HASH


@dataclass(frozen=True)
class HashPayload:
    student_id: str
    activity_id: str
    title: str
    event_date: date
    timestamp: datetime

    def canonical(self) -> str:
        # Key order is part of the hash; do not sort or reorder
        return json.dumps(
            {
                "studentId": str(self.student_id),
                "activityId": str(self.activity_id),
                "title": self.title,
                "date": self.event_date.isoformat(),
                "timestamp": self.timestamp.isoformat(timespec="microseconds"),
            },
            separators=(",", ":"),
            ensure_ascii=False,
        )


@dataclass(frozen=True)
class ChainLink:
    block_number: int
    previous_hash: str


def compute_certificate_hash(payload: HashPayload) -> str:
    """SHA-256 hex digest of the canonical payload"""
    return hashlib.sha256(payload.canonical().encode("utf-8")).hexdigest()


def payload_for(certificate: Certificate) -> HashPayload:
    """Rebuild the hashed payload from a persisted certificate"""
    return HashPayload(
        student_id=certificate.student_id,
        activity_id=certificate.activity_id,
        title=certificate.title,
        event_date=certificate.event_date,
        timestamp=certificate.issued_at,
    )


def recompute_hash(certificate: Certificate) -> str:
    return compute_certificate_hash(payload_for(certificate))


def hashes_match(stored: Optional[str], computed: Optional[str]) -> bool:
    if not stored or not computed:
        return False
    return hmac.compare_digest(stored, computed)


def next_chain_link(previous: Optional[Certificate]) -> ChainLink:
    """Block number and previous-hash pointer for the next certificate"""
    if previous is None:
        return ChainLink(block_number=1, previous_hash=GENESIS_PREVIOUS_HASH)
    return ChainLink(
        block_number=previous.block_number + 1,
        previous_hash=previous.certificate_hash,
    )


async def latest_certificate_for(db: AsyncSession, student_id: str) -> Optional[Certificate]:
    """The student's certificate with the highest block number, if any"""
    result = await db.execute(
        select(Certificate)
        .where(Certificate.student_id == student_id)
        .order_by(Certificate.block_number.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def generate_verification_code() -> str:
    """12 upper-case hex characters"""
    return secrets.token_hex(6).upper()


def validate_chain(certificates: Sequence[Certificate]) -> List[str]:
    """
    Check a student's chain, ordered by block number.

    Returns a list of problems; an empty list means block numbers run 1..n
    without gaps, every previous_hash points at the preceding certificate's
    hash and every stored hash matches its recomputation.
    """
    errors: List[str] = []
    previous: Optional[Certificate] = None

    for index, certificate in enumerate(certificates, start=1):
        if certificate.block_number != index:
            errors.append(
                f"{certificate.certificate_id}: block {certificate.block_number}, expected {index}"
            )

        expected_previous = previous.certificate_hash if previous else GENESIS_PREVIOUS_HASH
        if certificate.previous_hash != expected_previous:
            errors.append(f"{certificate.certificate_id}: previous hash does not link to block {index - 1}")

        if not hashes_match(certificate.certificate_hash, recompute_hash(certificate)):
            errors.append(f"{certificate.certificate_id}: stored hash does not match contents")

        previous = certificate

    return errors
