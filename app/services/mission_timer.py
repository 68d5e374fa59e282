"""Mission HUD: the agent's single most urgent appointment with a countdown.

Two cooperative loops run on the event loop:

- the poll loop re-fetches the ranked appointment list every
  ``poll_interval`` seconds and picks the first actionable record; this is
  the only place the selected mission can change;
- the tick loop recomputes countdown and visibility from the cached target
  every second and never fetches.

Visibility is a pure function of the time remaining (no hysteresis):
more than 30 min → hidden, ≤30 min → preparation, ≤15 min → combat,
overdue → critical.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

PREPARATION_WINDOW = timedelta(minutes=30)
COMBAT_WINDOW = timedelta(minutes=15)

ACTIONABLE = ("missed", "pending", "attempted")

APPOINTMENTS_PATH = "/api/v1/agent/appointments"


class Visibility(str, Enum):
    HIDDEN = "hidden"
    PREPARATION = "preparation"
    COMBAT = "combat"
    CRITICAL = "critical"


def visibility_for(remaining: timedelta) -> Visibility:
    if remaining < timedelta(0):
        return Visibility.CRITICAL
    if remaining <= COMBAT_WINDOW:
        return Visibility.COMBAT
    if remaining <= PREPARATION_WINDOW:
        return Visibility.PREPARATION
    return Visibility.HIDDEN


def format_countdown(remaining: timedelta, visibility: Visibility) -> str:
    if visibility == Visibility.CRITICAL:
        return "OVERDUE"
    seconds = int(remaining.total_seconds())
    if visibility == Visibility.COMBAT:
        minutes, secs = divmod(seconds, 60)
        return f"{minutes}m {secs}s"
    if visibility == Visibility.PREPARATION:
        return f"{seconds // 60}m"
    return ""


def parse_timestamp(value: str | None) -> Optional[datetime]:
    """ISO-8601 → aware datetime (naive values are taken as UTC)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable appointment timestamp: %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def pick_next_mission(records: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """First actionable record of an already urgency-sorted list."""
    for record in records or []:
        if record.get("status") in ACTIONABLE:
            return record
    return None


@dataclass(frozen=True)
class HudState:
    mission: Optional[dict[str, Any]]
    visibility: Visibility
    countdown: str


class MissionTimer:
    """Client-side state machine for the mission HUD.

    ``fetch`` is an async callable returning the appointment records (see
    ``AppointmentFeed``). ``on_change`` is called with a ``HudState`` whenever
    the visible state changes.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[list[dict[str, Any]]]],
        poll_interval: float | None = None,
        tick_interval: float = 1.0,
        clock: Callable[[], datetime] | None = None,
        on_change: Callable[[HudState], None] | None = None,
    ):
        self._fetch = fetch
        self.poll_interval = poll_interval or settings.MISSION_POLL_SECONDS
        self.tick_interval = tick_interval
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._on_change = on_change

        self.mission: Optional[dict[str, Any]] = None
        self.target_time: Optional[datetime] = None
        self.visibility = Visibility.HIDDEN
        self.countdown = ""

        self._generation = 0
        self._poll_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def state(self) -> HudState:
        return HudState(mission=self.mission, visibility=self.visibility, countdown=self.countdown)

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def poll_once(self) -> Optional[dict[str, Any]]:
        """Fetch, select the next mission and refresh the HUD.

        A failed fetch keeps the previous mission. A response that arrives
        after a newer poll has started is discarded.
        """
        self._generation += 1
        generation = self._generation

        try:
            records = await self._fetch()
        except Exception as e:
            logger.warning("Mission poll failed, keeping previous target: %s", e)
            return self.mission

        if generation != self._generation:
            logger.debug("Discarding stale mission poll response (%d < %d)", generation, self._generation)
            return self.mission

        mission = pick_next_mission(records)
        if (mission or {}).get("id") != (self.mission or {}).get("id"):
            logger.info("Next mission: %s", mission.get("business_name") if mission else "none")
        self.mission = mission
        self.target_time = parse_timestamp(mission.get("appointment_date")) if mission else None
        self.tick()
        return self.mission

    def tick(self) -> HudState:
        """Recompute countdown and visibility from the cached target."""
        previous = self.state

        if self.mission is None or self.target_time is None:
            self.visibility = Visibility.HIDDEN
            self.countdown = ""
        else:
            remaining = self.target_time - self._clock()
            self.visibility = visibility_for(remaining)
            self.countdown = format_countdown(remaining, self.visibility)

        current = self.state
        if current != previous and self._on_change is not None:
            self._on_change(current)
        return current

    def _start_poll(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = asyncio.create_task(self.poll_once())

    async def _poll_loop(self) -> None:
        while True:
            self._start_poll()
            await asyncio.sleep(self.poll_interval)

    async def _tick_loop(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.tick_interval)

    def start(self) -> None:
        """Launch both loops on the running event loop."""
        if self.running:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        self._tick_task = asyncio.create_task(self._tick_loop())

    async def stop(self) -> None:
        """Cancel both loops and any in-flight poll."""
        tasks = [t for t in (self._poll_task, self._tick_task, self._inflight) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._poll_task = self._tick_task = self._inflight = None

    async def __aenter__(self) -> "MissionTimer":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


class AppointmentFeed:
    """Fetches the agent's ranked appointment records over HTTP."""

    def __init__(
        self,
        base_url: str,
        token: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None
        self._headers = {"Authorization": f"Bearer {token}"}

    async def __call__(self) -> list[dict[str, Any]]:
        response = await self._client.get(APPOINTMENTS_PATH, headers=self._headers)
        response.raise_for_status()
        return response.json().get("appointments", [])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
