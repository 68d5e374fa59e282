"""Bulk lead import: validate → dedup → single-commit insert.

Receives rows already parsed from the uploaded sheet and returns the
accepted/duplicate/invalid tally. A store failure during duplicate lookup
aborts the import before anything is written.
"""

import asyncio
import logging
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.lead import Lead, LeadStatus, PotentialLevel
from app.models.upload_batch import UploadBatch
from app.services.dedup import Candidate, dedupe_candidates
from app.services.phone_identity import storage_form

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    batch_id: Optional[UUID]
    accepted: int
    duplicates: int
    invalid: int
    replayed: bool = False


def prepare_candidates(rows: list[dict[str, Any]]) -> tuple[list[Candidate], int]:
    """Build dedup candidates from parsed rows; returns (candidates, invalid_count)."""
    candidates: list[Candidate] = []
    invalid = 0

    for row in rows:
        raw_phone = (row.get("phone_number") or "").strip()
        phone = storage_form(raw_phone)
        if phone is None or not (row.get("business_name") or "").strip():
            invalid += 1
            continue
        candidates.append(Candidate(raw_phone=raw_phone, phone=phone, row=row))

    return candidates, invalid


async def _find_replay(db: AsyncSession, import_key: str) -> Optional[ImportSummary]:
    result = await db.execute(select(UploadBatch).where(UploadBatch.import_key == import_key))
    batch = result.scalar_one_or_none()
    if batch is None:
        return None
    logger.info("Import key %s already processed as batch %s; replaying", import_key, batch.id)
    return ImportSummary(
        batch_id=batch.id,
        accepted=batch.total_leads,
        duplicates=batch.duplicate_count,
        invalid=batch.invalid_count,
        replayed=True,
    )


async def import_leads(
    db: AsyncSession,
    filename: str,
    rows: list[dict[str, Any]],
    uploaded_by: UUID,
    import_key: str | None = None,
    lock: asyncio.Lock | None = None,
    chunk_size: int | None = None,
) -> ImportSummary:
    """Import parsed rows as a new upload batch.

    Raises whatever the store raises during lookup or insert; the caller is
    expected to roll back. Nothing is persisted unless every step succeeds.
    """
    async with lock or nullcontext():
        if import_key:
            replay = await _find_replay(db, import_key)
            if replay:
                return replay

        candidates, invalid = prepare_candidates(rows)
        result = await dedupe_candidates(db, candidates, chunk_size=chunk_size)

        if not result.accepted and not import_key:
            logger.info(
                "Import of %s accepted nothing (%d duplicates, %d invalid)",
                filename, result.duplicate_count, invalid,
            )
            return ImportSummary(
                batch_id=None, accepted=0,
                duplicates=result.duplicate_count, invalid=invalid,
            )

        # A keyed import that accepted nothing still records an empty batch
        # so a retry with the same key replays instead of re-running dedup.
        batch = UploadBatch(
            filename=filename,
            uploaded_by=uploaded_by,
            total_leads=len(result.accepted),
            duplicate_count=result.duplicate_count,
            invalid_count=invalid,
            import_key=import_key,
        )
        db.add(batch)
        await db.flush()

        db.add_all([
            Lead(
                business_name=c.row["business_name"].strip(),
                phone_number=c.phone,
                address=c.row.get("address"),
                category=c.row.get("category"),
                website=c.row.get("website"),
                rating=c.row.get("rating"),
                status=LeadStatus.PENDING,
                potential_level=PotentialLevel.NOT_ASSESSED,
                batch_id=batch.id,
            )
            for c in result.accepted
        ])
        await db.commit()

    logger.info(
        "Batch %s created from %s: %d accepted, %d duplicates, %d invalid",
        batch.id, filename, len(result.accepted), result.duplicate_count, invalid,
    )
    return ImportSummary(
        batch_id=batch.id,
        accepted=len(result.accepted),
        duplicates=result.duplicate_count,
        invalid=invalid,
    )
