from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Callable

from noted.config import CALENDAR_COOLDOWN
from noted.models import AppleCalendar, CalendarConfig, CalendarEvent, ParsedParticipants
from noted.store import FETCH_ERRORS, Derived, FetchGate, RequestSequencer, Writable

logger = logging.getLogger(__name__)


def this_month() -> date:
    return date.today().replace(day=1)


def shift_month(month: date, offset: int) -> date:
    years, index = divmod(month.month - 1 + offset, 12)
    return date(month.year + years, index + 1, 1)


def month_window(month: date) -> tuple[date, date]:
    """First day of the previous month through the last day of the next one."""
    first = month.replace(day=1)
    return shift_month(first, -1), shift_month(first, 2) - timedelta(days=1)


def _local_midnight(day: date) -> str:
    return datetime(day.year, day.month, day.day).astimezone().isoformat()


@dataclass
class CalendarState:
    config: CalendarConfig = field(default_factory=CalendarConfig)
    events: list[CalendarEvent] = field(default_factory=list)
    loading: bool = False
    error: str | None = None
    last_fetch: float | None = None
    current_month: date = field(default_factory=this_month)


class CalendarStore:
    """Calendar connection and a three-month window of events around ``current_month``."""

    def __init__(
        self,
        api,
        cooldown: float = CALENDAR_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api = api
        self.state: Writable[CalendarState] = Writable(CalendarState())
        self.gate = FetchGate(cooldown, clock)
        self._sequencer = RequestSequencer()

        self.events: Derived[list[CalendarEvent]] = Derived(self.state, lambda s: s.events)
        self.loading: Derived[bool] = Derived(self.state, lambda s: s.loading)
        self.connected: Derived[bool] = Derived(self.state, lambda s: s.config.connected)
        self.config: Derived[CalendarConfig] = Derived(self.state, lambda s: s.config)
        self.current_month: Derived[date] = Derived(self.state, lambda s: s.current_month)

    def _update(self, **changes: Any) -> None:
        self.state.update(lambda s: replace(s, **changes))

    async def init(self) -> None:
        self._update(loading=True, error=None)
        try:
            config = await self.api.get_calendar_config()
            self._update(config=config)
            if config.connected:
                await self.fetch_events()
        except FETCH_ERRORS as exc:
            logger.warning("Failed to load calendar config: %s", exc)
            self._update(error=str(exc))
        finally:
            self._update(loading=self.gate.in_flight > 0)

    async def fetch_events(self, force: bool = False) -> bool:
        if not self.gate.allows(force):
            logger.debug("Skipping calendar fetch (in flight or within cooldown)")
            return False

        token = self._sequencer.next()
        self.gate.begin()
        self._update(loading=True, error=None)
        start, end = month_window(self.state.get().current_month)
        try:
            events = await self.api.get_calendar_events(_local_midnight(start), _local_midnight(end))
        except FETCH_ERRORS as exc:
            self.gate.end(success=False)
            logger.exception("Failed to fetch calendar events")
            if self._sequencer.accept(token):
                self._update(error=str(exc))
            return False
        else:
            applied = self._sequencer.accept(token)
            fetched_at = self.gate.end(success=applied)
            if not applied:
                logger.debug("Discarding stale calendar response %d", token)
                return False
            self._update(events=events, last_fetch=fetched_at, error=None)
            return True
        finally:
            self._update(loading=self.gate.in_flight > 0)

    async def set_month(self, month: date) -> None:
        self._update(current_month=month.replace(day=1))
        await self.fetch_events(force=True)

    async def previous_month(self) -> None:
        self._update(current_month=shift_month(self.state.get().current_month, -1))
        await self.fetch_events(force=True)

    async def next_month(self) -> None:
        self._update(current_month=shift_month(self.state.get().current_month, 1))
        await self.fetch_events(force=True)

    async def go_to_today(self) -> None:
        self._update(current_month=this_month())
        await self.fetch_events(force=True)

    async def refresh(self) -> None:
        await self.fetch_events(force=True)

    async def connect(self) -> dict:
        """Grant access to the native (Apple) calendar and load events."""
        result = await self.api.connect_apple_calendar()
        await self.init()
        return result

    async def disconnect(self) -> bool:
        try:
            await self.api.disconnect_calendar()
        except FETCH_ERRORS as exc:
            logger.warning("Failed to disconnect calendar: %s", exc)
            self._update(error=str(exc))
            return False
        self.reset()
        return True

    def reset(self) -> None:
        self._sequencer.reset()
        self.gate.reset()
        self.state.set(CalendarState())

    async def auth_url(self) -> str:
        return await self.api.get_calendar_auth_url()

    async def calendars(self) -> list[AppleCalendar]:
        return await self.api.get_apple_calendars()

    async def event(self, event_id: str) -> CalendarEvent:
        return await self.api.get_calendar_event(event_id)

    async def parse_participants(
        self, attendees: list[str], internal_domain: str | None = None
    ) -> ParsedParticipants:
        return await self.api.parse_participants(attendees, internal_domain)
