"""Appointment urgency classification.

Every read recomputes, from the lead, its notes and its call history:

- the *effective time* of the appointment (appointment_date, else a date
  mined from the latest note, else processed_at, else now),
- a *status* (won / interviewed / attempted / missed / pending),
- an orderable *urgency score*; lower sorts first.

Nothing here is persisted.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Iterable, NamedTuple, Optional, Sequence
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.activity_log import ActivityAction, ActivityLogEntry, CALL_ACTIONS
from app.models.lead import Lead, LeadStatus
from app.models.lead_note import LeadNote

logger = logging.getLogger(__name__)

MISSED_AFTER = timedelta(minutes=15)
INTERVIEW_MIN_SECONDS = 60


class MissionStatus(str, Enum):
    WON = "won"
    INTERVIEWED = "interviewed"
    ATTEMPTED = "attempted"
    MISSED = "missed"
    PENDING = "pending"


ACTIONABLE_STATUSES = frozenset({MissionStatus.MISSED, MissionStatus.PENDING, MissionStatus.ATTEMPTED})


class UrgencyScore(NamedTuple):
    """Sort key. ``tier`` orders the infinite cases, ``offset_ms`` the finite one.

    missed = (0, 0) i.e. -inf, pending/attempted = (1, ms until due),
    interviewed = (2, 0) i.e. +inf, won = (3, 0) i.e. just after +inf.
    """
    tier: int
    offset_ms: int


# ---------------------------------------------------------------------------
# Legacy note format: "📅 Randevu: 5 Mart 2026 Perşembe 14:30"
# ---------------------------------------------------------------------------

TURKISH_MONTHS = {
    "ocak": 1, "şubat": 2, "mart": 3, "nisan": 4, "mayıs": 5, "haziran": 6,
    "temmuz": 7, "ağustos": 8, "eylül": 9, "ekim": 10, "kasım": 11, "aralık": 12,
}

_NOTE_MARKER = re.compile(r"📅 Randevu:[ \t]*(.*)")


def _turkish_lower(text: str) -> str:
    return text.replace("İ", "i").replace("I", "ı").lower()


def parse_appointment_note(text: str | None, tz: tzinfo | None = None) -> Optional[datetime]:
    """Extract the appointment time from a note as aware UTC, or None.

    Expects ``<day> <month> <year> <weekday> <HH:MM>`` after the marker, in
    local time. Any malformed or out-of-range piece yields None; this
    function does not raise.
    """
    if not text:
        return None
    match = _NOTE_MARKER.search(text)
    if not match:
        return None

    parts = match.group(1).split()
    if len(parts) < 5:
        return None

    month = TURKISH_MONTHS.get(_turkish_lower(parts[1]))
    if month is None:
        return None

    clock = parts[4].split(":")
    if len(clock) != 2:
        return None

    try:
        day = int(parts[0])
        year = int(parts[2])
        hour, minute = int(clock[0]), int(clock[1])
        local = datetime(year, month, day, hour, minute, tzinfo=tz or _local_tz())
        return local.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        logger.debug("Ignoring out-of-range appointment note: %r", match.group(1))
        return None


def _local_tz() -> ZoneInfo:
    return ZoneInfo(settings.LOCAL_TIMEZONE)


def as_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; make them aware."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_effective_time(
    appointment_date: datetime | None,
    latest_note: str | None,
    processed_at: datetime | None,
    now: datetime,
    tz: tzinfo | None = None,
) -> datetime:
    """First available of: appointment_date, note date, processed_at, now."""
    if appointment_date is not None:
        return as_utc(appointment_date)
    parsed = parse_appointment_note(latest_note, tz)
    if parsed is not None:
        return parsed
    if processed_at is not None:
        return as_utc(processed_at)
    return as_utc(now)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def call_duration(entry: Any) -> float:
    details = getattr(entry, "details", None) or {}
    try:
        return float(details.get("duration") or 0)
    except (TypeError, ValueError):
        return 0.0


def classify(
    lead_status: str | LeadStatus,
    calls: Sequence[Any],
    effective_time: datetime,
    now: datetime,
) -> MissionStatus:
    """Status of one lead. ``calls`` must be ordered most recent first."""
    if lead_status == LeadStatus.WON:
        return MissionStatus.WON

    if calls:
        last_call = calls[0]
        if call_duration(last_call) > INTERVIEW_MIN_SECONDS or last_call.action == ActivityAction.COMPLETED:
            return MissionStatus.INTERVIEWED
        return MissionStatus.ATTEMPTED

    if as_utc(now) - as_utc(effective_time) > MISSED_AFTER:
        return MissionStatus.MISSED
    return MissionStatus.PENDING


def urgency_score(status: MissionStatus, effective_time: datetime, now: datetime) -> UrgencyScore:
    if status == MissionStatus.MISSED:
        return UrgencyScore(0, 0)
    if status == MissionStatus.INTERVIEWED:
        return UrgencyScore(2, 0)
    if status == MissionStatus.WON:
        return UrgencyScore(3, 0)
    delta = as_utc(effective_time) - as_utc(now)
    return UrgencyScore(1, int(delta.total_seconds() * 1000))


@dataclass
class AppointmentView:
    id: UUID
    business_name: str
    phone_number: str
    potential_level: Optional[str]
    effective_time: datetime
    status: MissionStatus
    call_count: int
    last_call_at: Optional[datetime]
    note: Optional[str]
    score: UrgencyScore

    @property
    def is_actionable(self) -> bool:
        return self.status in ACTIONABLE_STATUSES

    def to_record(self) -> dict[str, Any]:
        """Shape consumed by the mission HUD poller."""
        return {
            "id": str(self.id),
            "business_name": self.business_name,
            "phone_number": self.phone_number,
            "potential_level": self.potential_level,
            "appointment_date": self.effective_time.isoformat(),
            "status": self.status.value,
            "call_count": self.call_count,
            "last_call_at": as_utc(self.last_call_at).isoformat() if self.last_call_at else None,
            "notes": self.note,
            "urgency_tier": self.score.tier,
            "urgency_offset_ms": self.score.offset_ms,
        }


def evaluate_lead(
    lead: Any,
    latest_note: str | None,
    calls: Sequence[Any],
    now: datetime,
    tz: tzinfo | None = None,
) -> AppointmentView:
    effective = resolve_effective_time(lead.appointment_date, latest_note, lead.processed_at, now, tz)
    status = classify(lead.status, calls, effective, now)
    potential = getattr(lead, "potential_level", None)
    return AppointmentView(
        id=lead.id,
        business_name=lead.business_name,
        phone_number=lead.phone_number,
        potential_level=getattr(potential, "value", potential),
        effective_time=effective,
        status=status,
        call_count=len(calls),
        last_call_at=calls[0].created_at if calls else None,
        note=latest_note,
        score=urgency_score(status, effective, now),
    )


def evaluate_leads(
    leads: Iterable[Any],
    latest_notes: dict[UUID, str],
    calls_by_lead: dict[UUID, list[Any]],
    now: datetime,
    tz: tzinfo | None = None,
) -> list[AppointmentView]:
    """Evaluate and sort ascending by urgency score (most urgent first)."""
    views = [
        evaluate_lead(lead, latest_notes.get(lead.id), calls_by_lead.get(lead.id, []), now, tz)
        for lead in leads
    ]
    views.sort(key=lambda v: v.score)
    return views


def next_mission(views: Iterable[AppointmentView]) -> Optional[AppointmentView]:
    """Most urgent actionable appointment (views must already be sorted)."""
    for view in views:
        if view.is_actionable:
            return view
    return None


async def load_agent_appointments(
    db: AsyncSession,
    agent_id: UUID,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[AppointmentView]:
    """Fetch an agent's appointment leads with notes and calls, then rank them."""
    now = now or datetime.now(timezone.utc)

    result = await db.execute(
        select(Lead)
        .where(
            Lead.assigned_to == agent_id,
            or_(Lead.appointment_date.isnot(None), Lead.status == LeadStatus.APPOINTMENT),
        )
        .order_by(Lead.appointment_date)
    )
    leads = result.scalars().all()
    if not leads:
        return []

    lead_ids = [lead.id for lead in leads]

    notes_result = await db.execute(
        select(LeadNote)
        .where(LeadNote.lead_id.in_(lead_ids))
        .order_by(LeadNote.created_at.desc())
    )
    latest_notes: dict[UUID, str] = {}
    for note in notes_result.scalars().all():
        latest_notes.setdefault(note.lead_id, note.note)

    calls_result = await db.execute(
        select(ActivityLogEntry)
        .where(ActivityLogEntry.lead_id.in_(lead_ids), ActivityLogEntry.action.in_(CALL_ACTIONS))
        .order_by(ActivityLogEntry.created_at.desc())
    )
    calls_by_lead: dict[UUID, list[ActivityLogEntry]] = {}
    for entry in calls_result.scalars().all():
        calls_by_lead.setdefault(entry.lead_id, []).append(entry)

    views = evaluate_leads(leads, latest_notes, calls_by_lead, now, tz)
    logger.debug("Agent %s: %d appointment leads evaluated", agent_id, len(views))
    return views
