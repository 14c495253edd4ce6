from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

import httpx

from noted.config import DEFAULT_PORT
from noted.models import (
    Account,
    Activity,
    AppleCalendar,
    Analytics,
    Attachment,
    CalendarConfig,
    CalendarEvent,
    CaptureResult,
    Contact,
    ContactStats,
    DomainGroup,
    IncompleteField,
    Note,
    ParsedParticipants,
    SearchResult,
    Tag,
    Todo,
)

logger = logging.getLogger(__name__)

PortBridge = Callable[[], Awaitable[int]]


class ApiError(Exception):
    """Non-success HTTP response from the backend."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def port_file_bridge(path: Path) -> PortBridge:
    """Bridge for desktop mode: the native shell writes its listening port to *path*."""

    async def read_port() -> int:
        return int(path.read_text().strip())

    return read_port


class BackendLocator:
    """Resolves the backend base URL.

    Without a bridge the client is in browser/dev mode and talks to
    ``localhost`` on the default port. With a bridge, the port it reports is
    cached after the first call; a failing bridge caches the default port
    for the rest of the locator's lifetime.
    """

    def __init__(self, bridge: PortBridge | None = None, default_port: int = DEFAULT_PORT) -> None:
        self.bridge = bridge
        self.default_port = default_port
        self.cached_port: int | None = None

    @property
    def default_base(self) -> str:
        return f"http://localhost:{self.default_port}/api"

    async def base_url(self) -> str:
        if self.bridge is None:
            return self.default_base
        if self.cached_port is None:
            try:
                self.cached_port = int(await self.bridge())
            except Exception:
                logger.warning(
                    "Backend port lookup failed, using default port %d", self.default_port, exc_info=True
                )
                self.cached_port = self.default_port
        return f"http://127.0.0.1:{self.cached_port}/api"

    def base_url_sync(self) -> str:
        if self.cached_port is not None:
            return f"http://127.0.0.1:{self.cached_port}/api"
        return self.default_base

    def attachment_url(self, filename: str) -> str:
        origin = self.base_url_sync().removesuffix("/api")
        return f"{origin}/uploads/{filename}"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


def _payload(**fields: Any) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


class ApiClient:
    """One coroutine per backend endpoint. A single attempt per call, no timeout."""

    def __init__(
        self,
        locator: BackendLocator | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.locator = locator or BackendLocator()
        self.http = http or httpx.AsyncClient(timeout=None)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _send(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        base = await self.locator.base_url()
        response = await self.http.request(method, f"{base}{endpoint}", **kwargs)
        if not response.is_success:
            raise ApiError(_error_message(response), status=response.status_code)
        return response

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        kwargs: dict[str, Any] = {"headers": {"Content-Type": "application/json"}}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v not in (None, "")}
        response = await self._send(method, endpoint, **kwargs)
        if not response.content:
            return None
        return response.json()

    async def upload(self, endpoint: str, filename: str, content: bytes, mime_type: str) -> Any:
        response = await self._send("POST", endpoint, files={"file": (filename, content, mime_type)})
        return response.json()

    # Accounts

    async def get_accounts(self) -> list[Account]:
        return Account.many(await self.request("GET", "/accounts"))

    async def get_deleted_accounts(self) -> list[Account]:
        return Account.many(await self.request("GET", "/accounts/deleted"))

    async def get_account(self, account_id: str) -> Account:
        return Account.from_api(await self.request("GET", f"/accounts/{account_id}"))

    async def create_account(
        self,
        name: str,
        account_owner: str | None = None,
        budget: float | None = None,
        est_engineers: int | None = None,
    ) -> Account:
        data = _payload(name=name, account_owner=account_owner, budget=budget, est_engineers=est_engineers)
        return Account.from_api(await self.request("POST", "/accounts", json=data))

    async def update_account(self, account_id: str, **changes: Any) -> Account:
        return Account.from_api(await self.request("PUT", f"/accounts/{account_id}", json=_payload(**changes)))

    async def delete_account(self, account_id: str) -> dict:
        return await self.request("DELETE", f"/accounts/{account_id}")

    async def restore_account(self, account_id: str) -> dict:
        return await self.request("POST", f"/accounts/{account_id}/restore")

    async def permanent_delete_account(self, account_id: str) -> dict:
        return await self.request("DELETE", f"/accounts/{account_id}/permanent")

    async def reorder_notes(self, account_id: str, note_ids: list[str]) -> dict:
        return await self.request("POST", f"/accounts/{account_id}/notes/reorder", json={"note_ids": note_ids})

    # Notes

    async def get_notes(self) -> list[Note]:
        return Note.many(await self.request("GET", "/notes"))

    async def get_note(self, note_id: str) -> Note:
        return Note.from_api(await self.request("GET", f"/notes/{note_id}"))

    async def get_notes_by_account(self, account_id: str) -> list[Note]:
        return Note.many(await self.request("GET", f"/accounts/{account_id}/notes"))

    async def create_note(
        self,
        title: str,
        account_id: str,
        template_type: str | None = None,
        internal_participants: list[str] | None = None,
        external_participants: list[str] | None = None,
        content: str | None = None,
        meeting_id: str | None = None,
        meeting_date: str | None = None,
    ) -> Note:
        data = _payload(
            title=title,
            account_id=account_id,
            template_type=template_type,
            internal_participants=internal_participants,
            external_participants=external_participants,
            content=content,
            meeting_id=meeting_id,
            meeting_date=meeting_date,
        )
        return Note.from_api(await self.request("POST", "/notes", json=data))

    async def update_note(self, note_id: str, **changes: Any) -> Note:
        return Note.from_api(await self.request("PUT", f"/notes/{note_id}", json=_payload(**changes)))

    async def delete_note(self, note_id: str) -> dict:
        return await self.request("DELETE", f"/notes/{note_id}")

    async def restore_note(self, note_id: str) -> dict:
        return await self.request("POST", f"/notes/{note_id}/restore")

    async def permanent_delete_note(self, note_id: str) -> dict:
        return await self.request("DELETE", f"/notes/{note_id}/permanent")

    async def get_deleted_notes(self) -> list[Note]:
        return Note.many(await self.request("GET", "/notes/deleted"))

    async def get_archived_notes(self) -> list[Note]:
        return Note.many(await self.request("GET", "/notes/archived"))

    async def toggle_note_pin(self, note_id: str) -> bool:
        return bool((await self.request("POST", f"/notes/{note_id}/pin"))["pinned"])

    async def toggle_note_archive(self, note_id: str) -> bool:
        return bool((await self.request("POST", f"/notes/{note_id}/archive"))["archived"])

    async def export_note(self, note_id: str, export_type: str = "full") -> dict:
        return await self.request("GET", f"/notes/{note_id}/export", params={"type": export_type})

    async def export_markdown(self, note_id: str) -> str:
        response = await self._send("GET", f"/notes/{note_id}/export/markdown")
        return response.text

    async def import_markdown(self, path: Path) -> dict:
        return await self.upload("/import/markdown", path.name, path.read_bytes(), "text/markdown")

    # Todos

    async def get_todos(self, status: str | None = None) -> list[Todo]:
        return Todo.many(await self.request("GET", "/todos", params={"status": status}))

    async def get_todo(self, todo_id: str) -> Todo:
        return Todo.from_api(await self.request("GET", f"/todos/{todo_id}"))

    async def create_todo(
        self,
        title: str,
        description: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        due_date: str | None = None,
        note_id: str | None = None,
        account_id: str | None = None,
    ) -> Todo:
        data = _payload(
            title=title,
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
            note_id=note_id,
            account_id=account_id,
        )
        return Todo.from_api(await self.request("POST", "/todos", json=data))

    async def update_todo(self, todo_id: str, **changes: Any) -> Todo:
        return Todo.from_api(await self.request("PUT", f"/todos/{todo_id}", json=_payload(**changes)))

    async def delete_todo(self, todo_id: str) -> dict:
        return await self.request("DELETE", f"/todos/{todo_id}")

    async def restore_todo(self, todo_id: str) -> dict:
        return await self.request("POST", f"/todos/{todo_id}/restore")

    async def permanent_delete_todo(self, todo_id: str) -> dict:
        return await self.request("DELETE", f"/todos/{todo_id}/permanent")

    async def get_deleted_todos(self) -> list[Todo]:
        return Todo.many(await self.request("GET", "/todos/deleted"))

    async def toggle_todo_pin(self, todo_id: str) -> bool:
        return bool((await self.request("POST", f"/todos/{todo_id}/pin"))["pinned"])

    async def link_todo_to_note(self, todo_id: str, note_id: str) -> dict:
        return await self.request("POST", f"/todos/{todo_id}/notes/{note_id}")

    async def unlink_todo_from_note(self, todo_id: str, note_id: str) -> dict:
        return await self.request("DELETE", f"/todos/{todo_id}/notes/{note_id}")

    # Search and analytics

    async def search(self, query: str) -> list[SearchResult]:
        return SearchResult.many(await self.request("GET", "/search", params={"q": query}))

    async def get_analytics(self) -> Analytics:
        return Analytics.from_api(await self.request("GET", "/analytics"))

    async def get_incomplete_fields(self) -> list[IncompleteField]:
        return IncompleteField.many(await self.request("GET", "/analytics/incomplete"))

    # Calendar

    async def get_calendar_auth_url(self) -> str:
        return (await self.request("GET", "/calendar/auth"))["url"]

    async def get_calendar_config(self) -> CalendarConfig:
        return CalendarConfig.from_api(await self.request("GET", "/calendar/config"))

    async def disconnect_calendar(self) -> dict:
        return await self.request("DELETE", "/calendar/disconnect")

    async def connect_apple_calendar(self) -> dict:
        return await self.request("POST", "/calendar/connect")

    async def get_apple_calendars(self) -> list[AppleCalendar]:
        return AppleCalendar.many(await self.request("GET", "/calendar/calendars"))

    async def get_calendar_events(
        self,
        start: str | None = None,
        end: str | None = None,
        calendar_id: str | None = None,
    ) -> list[CalendarEvent]:
        params = {"start": start, "end": end, "calendar_id": calendar_id}
        return CalendarEvent.many(await self.request("GET", "/calendar/events", params=params))

    async def get_calendar_event(self, event_id: str) -> CalendarEvent:
        return CalendarEvent.from_api(await self.request("GET", f"/calendar/events/{event_id}"))

    async def parse_participants(
        self, attendees: list[str], internal_domain: str | None = None
    ) -> ParsedParticipants:
        data = {"attendees": attendees, "internal_domain": internal_domain}
        return ParsedParticipants.from_api(
            await self.request("POST", "/calendar/parse-participants", json=data)
        )

    # Tags

    async def get_tags(self) -> list[Tag]:
        return Tag.many(await self.request("GET", "/tags"))

    async def create_tag(self, name: str, color: str | None = None) -> Tag:
        return Tag.from_api(await self.request("POST", "/tags", json=_payload(name=name, color=color)))

    async def update_tag(self, tag_id: str, **changes: Any) -> Tag:
        return Tag.from_api(await self.request("PUT", f"/tags/{tag_id}", json=_payload(**changes)))

    async def delete_tag(self, tag_id: str) -> dict:
        return await self.request("DELETE", f"/tags/{tag_id}")

    async def get_note_tags(self, note_id: str) -> list[Tag]:
        return Tag.many(await self.request("GET", f"/notes/{note_id}/tags"))

    async def add_tag_to_note(self, note_id: str, tag_id: str) -> dict:
        return await self.request("POST", f"/notes/{note_id}/tags/{tag_id}")

    async def remove_tag_from_note(self, note_id: str, tag_id: str) -> dict:
        return await self.request("DELETE", f"/notes/{note_id}/tags/{tag_id}")

    # Activities

    async def get_activities(self, account_id: str, limit: int | None = None) -> list[Activity]:
        rows = await self.request("GET", f"/accounts/{account_id}/activities", params={"limit": limit})
        return Activity.many(rows)

    async def create_activity(
        self,
        account_id: str,
        type: str,
        title: str,
        description: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> Activity:
        data = _payload(
            account_id=account_id,
            type=type,
            title=title,
            description=description,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        return Activity.from_api(await self.request("POST", "/activities", json=data))

    # Attachments

    async def get_attachments(self, note_id: str) -> list[Attachment]:
        return Attachment.many(await self.request("GET", f"/notes/{note_id}/attachments"))

    async def upload_attachment(
        self, note_id: str, filename: str, content: bytes, mime_type: str = "application/octet-stream"
    ) -> Attachment:
        return Attachment.from_api(
            await self.upload(f"/notes/{note_id}/attachments", filename, content, mime_type)
        )

    async def delete_attachment(self, note_id: str, attachment_id: str) -> dict:
        return await self.request("DELETE", f"/notes/{note_id}/attachments/{attachment_id}")

    # Quick capture

    async def quick_capture(
        self,
        type: str,
        title: str,
        content: str | None = None,
        account_id: str | None = None,
        priority: str | None = None,
        description: str | None = None,
    ) -> CaptureResult:
        data = _payload(
            type=type,
            title=title,
            content=content,
            account_id=account_id,
            priority=priority,
            description=description,
        )
        return CaptureResult.from_api(await self.request("POST", "/quick-capture", json=data))

    # Contacts

    async def get_contacts(self, filter: str | None = None, account_id: str | None = None) -> list[Contact]:
        rows = await self.request("GET", "/contacts", params={"filter": filter, "account_id": account_id})
        return Contact.many(rows)

    async def get_contact_stats(self) -> ContactStats:
        return ContactStats.from_api(await self.request("GET", "/contacts/stats"))

    async def get_contact(self, contact_id: str) -> Contact:
        return Contact.from_api(await self.request("GET", f"/contacts/{contact_id}"))

    async def create_contact(
        self,
        email: str,
        name: str | None = None,
        company: str | None = None,
        source: str | None = None,
    ) -> Contact:
        data = _payload(email=email, name=name, company=company, source=source)
        return Contact.from_api(await self.request("POST", "/contacts", json=data))

    async def update_contact(self, contact_id: str, **changes: Any) -> Contact:
        return Contact.from_api(await self.request("PUT", f"/contacts/{contact_id}", json=_payload(**changes)))

    async def delete_contact(self, contact_id: str) -> dict:
        return await self.request("DELETE", f"/contacts/{contact_id}")

    async def confirm_contact_suggestion(self, contact_id: str, confirm: bool) -> dict:
        return await self.request(
            "POST", f"/contacts/{contact_id}/confirm-suggestion", json={"confirm": confirm}
        )

    async def link_contact_to_account(self, contact_id: str, account_id: str) -> dict:
        return await self.request("POST", f"/contacts/{contact_id}/link/{account_id}")

    async def get_contact_notes(self, contact_id: str) -> list[Note]:
        return Note.many(await self.request("GET", f"/contacts/{contact_id}/notes"))

    async def bulk_contacts(
        self, contact_ids: list[str], action: str, value: dict[str, Any] | None = None
    ) -> dict:
        data = _payload(contact_ids=contact_ids, action=action, value=value)
        return await self.request("POST", "/contacts/bulk", json=data)

    async def get_contact_domain_groups(
        self, filter: str | None = None, include_contacts: bool = False
    ) -> list[DomainGroup]:
        params = {"filter": filter, "include_contacts": "true" if include_contacts else None}
        return DomainGroup.many(await self.request("GET", "/contacts/domain-groups", params=params))

    async def link_domain_to_account(self, domain: str, account_id: str) -> dict:
        return await self.request("POST", f"/contacts/domain/{domain}/link/{account_id}")

    async def create_account_from_domain(self, domain: str, account_name: str | None = None) -> dict:
        return await self.request(
            "POST", f"/contacts/domain/{domain}/create-account", json=_payload(account_name=account_name) or None
        )

    # Data management

    async def export_all_data(self) -> dict:
        return await self.request("GET", "/export")

    async def clear_all_data(self) -> dict:
        return await self.request("DELETE", "/data")
