"""Duplicate detection for lead imports.

A candidate is a duplicate when any encoding of its phone number already
exists in the store, or belongs to a candidate accepted earlier in the same
batch. Evaluation is strictly sequential: accepted candidates feed the
"known" set before the next one is checked.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.lead import Lead
from app.services.phone_identity import generate_variants

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    """One incoming row with its phone identity precomputed."""
    raw_phone: str
    phone: str  # storage form
    row: dict[str, Any] = field(default_factory=dict)
    variants: set[str] = field(default_factory=set)

    def __post_init__(self):
        if not self.variants:
            self.variants = generate_variants(self.raw_phone)
            self.variants.add(self.phone)


@dataclass
class DedupResult:
    accepted: list[Candidate]
    duplicate_count: int = 0


async def find_existing_phones(
    db: AsyncSession,
    values: Iterable[str],
    chunk_size: int | None = None,
) -> set[str]:
    """Return the subset of ``values`` present in ``leads.phone_number``.

    Queries in chunks to stay under backend IN-list limits. Database errors
    propagate so the caller can abort the whole import.
    """
    chunk_size = chunk_size or settings.DEDUP_CHUNK_SIZE
    pending = sorted(set(values))
    found: set[str] = set()

    for start in range(0, len(pending), chunk_size):
        chunk = pending[start:start + chunk_size]
        result = await db.execute(
            select(Lead.phone_number).where(Lead.phone_number.in_(chunk)).distinct()
        )
        found.update(result.scalars().all())

    logger.debug("Phone lookup: %d values, %d chunks, %d hits",
                 len(pending), (len(pending) + chunk_size - 1) // chunk_size, len(found))
    return found


def partition_candidates(candidates: Iterable[Candidate], known: set[str]) -> DedupResult:
    """Split candidates into accepted / duplicate, in input order.

    ``known`` is mutated: each accepted candidate's variants are added to it.
    """
    accepted: list[Candidate] = []
    duplicates = 0

    for candidate in candidates:
        if candidate.variants & known:
            duplicates += 1
            continue
        known.update(candidate.variants)
        accepted.append(candidate)

    return DedupResult(accepted=accepted, duplicate_count=duplicates)


async def dedupe_candidates(
    db: AsyncSession,
    candidates: list[Candidate],
    chunk_size: int | None = None,
) -> DedupResult:
    """Check candidates against the store and against each other."""
    all_variants: set[str] = set()
    for candidate in candidates:
        all_variants.update(candidate.variants)

    known = await find_existing_phones(db, all_variants, chunk_size=chunk_size)
    stored_hits = len(known)
    result = partition_candidates(candidates, known)

    logger.info(
        "Dedup: %d candidates, %d stored variants matched, %d accepted, %d duplicates",
        len(candidates), stored_hits, len(result.accepted), result.duplicate_count,
    )
    return result
