from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from noted.api import ApiClient, BackendLocator, port_file_bridge
from noted.config import Settings
from noted.models import Account, CaptureResult, Note
from noted.store import Derived
from noted.stores.accounts import AccountStore, ActivityStore
from noted.stores.analytics import AnalyticsStore
from noted.stores.calendar import CalendarStore
from noted.stores.contacts import ContactStore
from noted.stores.notes import AttachmentStore, NoteStore, TagStore
from noted.stores.search import SearchStore
from noted.stores.theme import ThemeStore
from noted.stores.toasts import ToastQueue
from noted.stores.todos import TodoStore

logger = logging.getLogger(__name__)


@dataclass
class AccountNotes:
    account: Account
    notes: list[Note]


def group_notes_by_account(values: list) -> dict[str, AccountNotes]:
    notes, accounts = values
    return {
        account.id: AccountNotes(account, [n for n in notes if n.account_id == account.id])
        for account in accounts
    }


class AppContext:
    """Everything a session needs: the API client and one instance of every store.

    Pass it explicitly to whatever renders or drives the stores; there are no
    module-level singletons.
    """

    def __init__(self, settings: Settings | None = None, api: ApiClient | None = None) -> None:
        self.settings = settings or Settings()
        if api is None:
            bridge = port_file_bridge(self.settings.port_file) if self.settings.port_file else None
            api = ApiClient(BackendLocator(bridge, self.settings.api_port))
        self.api = api

        self.accounts = AccountStore(api)
        self.activities = ActivityStore(api)
        self.notes = NoteStore(api)
        self.tags = TagStore(api)
        self.attachments = AttachmentStore(api)
        self.todos = TodoStore(api)
        self.contacts = ContactStore(api)
        self.search = SearchStore(api)
        self.analytics = AnalyticsStore(api)
        self.calendar = CalendarStore(api, cooldown=self.settings.calendar_cooldown)
        self.toasts = ToastQueue(ttl=self.settings.toast_ttl)
        self.theme = ThemeStore(self.settings.theme_path)

        self.notes_by_account: Derived[dict[str, AccountNotes]] = Derived(
            [self.notes.items, self.accounts.items], group_notes_by_account
        )

    async def __aenter__(self) -> "AppContext":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.api.aclose()

    async def quick_capture(self, type: str, title: str, **fields: Any) -> CaptureResult:
        """Create a note or todo from minimal input and refresh whichever store it lands in."""
        if type not in ("note", "todo"):
            raise ValueError(f"Quick capture type must be 'note' or 'todo', got {type!r}")
        result = await self.api.quick_capture(type, title, **fields)
        if type == "note":
            await self.notes.refresh()
            # capture may have created the "Unassigned" account
            await self.accounts.load()
        else:
            await self.todos.refresh()
        return result

    async def export_data(self) -> dict:
        return await self.api.export_all_data()

    async def clear_all_data(self) -> None:
        await self.api.clear_all_data()
        for store in (
            self.accounts,
            self.activities,
            self.notes,
            self.tags,
            self.attachments,
            self.todos,
            self.contacts,
            self.search,
            self.analytics,
        ):
            store.clear()
        logger.info("Cleared all data")


def is_offline(exc: BaseException) -> bool:
    return isinstance(exc, httpx.TransportError)
