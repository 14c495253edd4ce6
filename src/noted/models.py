from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, TypeVar

T = TypeVar("T", bound="Record")

TODO_STATUSES = ("not_started", "in_progress", "stuck", "completed")
TODO_PRIORITIES = ("low", "medium", "high")


class Record:
    """Base for records exchanged verbatim with the backend."""

    @classmethod
    def from_api(cls: type[T], data: dict[str, Any]) -> T:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

    @classmethod
    def many(cls: type[T], rows: list[dict[str, Any]] | None) -> list[T]:
        return [cls.from_api(r) for r in rows or []]


@dataclass
class Account(Record):
    id: str = ""
    name: str = ""
    account_owner: str = ""
    budget: float | None = None
    est_engineers: int | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Tag(Record):
    id: str = ""
    name: str = ""
    color: str = ""
    created_at: str = ""


@dataclass
class Attachment(Record):
    id: str = ""
    note_id: str = ""
    filename: str = ""  # stored name on the server
    original_name: str = ""
    mime_type: str = ""
    size: int = 0
    created_at: str = ""


@dataclass
class LinkedNote(Record):
    id: str = ""
    title: str = ""


@dataclass
class Todo(Record):
    id: str = ""
    title: str = ""
    description: str = ""
    status: str = "not_started"
    priority: str = "medium"
    due_date: str | None = None
    account_id: str | None = None
    account_name: str = ""
    pinned: bool = False
    created_at: str = ""
    updated_at: str = ""
    notes: list[LinkedNote] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Todo":
        todo = super().from_api({k: v for k, v in data.items() if k not in ("notes", "linked_notes")})
        todo.notes = LinkedNote.many(data.get("notes") or data.get("linked_notes"))
        return todo


@dataclass
class Note(Record):
    id: str = ""
    title: str = ""
    account_id: str = ""
    account_name: str = ""
    template_type: str = "initial"  # "initial", "followup", "quick" or "imported"
    internal_participants: list[str] = field(default_factory=list)
    external_participants: list[str] = field(default_factory=list)
    content: str = ""
    meeting_id: str | None = None
    meeting_date: str | None = None
    pinned: bool = False
    archived: bool = False
    sort_order: int = 0
    created_at: str = ""
    updated_at: str = ""
    todos: list[Todo] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Note":
        nested = ("todos", "tags", "attachments", "account")
        note = super().from_api({k: v for k, v in data.items() if k not in nested})
        note.todos = Todo.many(data.get("todos"))
        note.tags = Tag.many(data.get("tags"))
        note.attachments = Attachment.many(data.get("attachments"))
        account = data.get("account")
        if account and not note.account_name:
            note.account_name = account.get("name", "")
        return note


@dataclass
class Activity(Record):
    id: str = ""
    account_id: str = ""
    type: str = ""  # "note_created", "todo_completed", ...
    title: str = ""
    description: str = ""
    entity_type: str = ""
    entity_id: str = ""
    created_at: str = ""


@dataclass
class Contact(Record):
    id: str = ""
    email: str = ""
    name: str = ""
    company: str = ""
    domain: str = ""
    is_internal: bool = False
    account_id: str | None = None
    account_name: str = ""
    suggested_account_id: str | None = None
    suggested_account_name: str = ""
    suggestion_confirmed: bool = False
    source: str = ""
    first_seen: str = ""
    last_seen: str = ""
    meeting_count: int = 0
    created_at: str = ""
    updated_at: str = ""

    @property
    def has_pending_suggestion(self) -> bool:
        return bool(self.suggested_account_id) and not self.suggestion_confirmed


@dataclass
class ContactStats(Record):
    total_contacts: int = 0
    internal_contacts: int = 0
    external_contacts: int = 0
    linked_contacts: int = 0
    pending_suggestions: int = 0


@dataclass
class DomainGroup(Record):
    domain: str = ""
    contact_count: int = 0
    contact_ids: list[str] = field(default_factory=list)
    is_internal: bool = False
    linked_account_id: str | None = None
    linked_account_name: str = ""
    suggested_account: dict[str, str] | None = None
    contacts: list[Contact] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DomainGroup":
        group = super().from_api({k: v for k, v in data.items() if k != "contacts"})
        group.contacts = Contact.many(data.get("contacts"))
        return group


@dataclass
class CalendarConfig(Record):
    connected: bool = False
    email: str | None = None
    type: str | None = None  # "google" or "apple"


@dataclass
class CalendarEvent(Record):
    id: str = ""
    title: str = ""
    description: str = ""
    start_time: str = ""
    end_time: str = ""
    attendees: list[str] = field(default_factory=list)
    meet_link: str | None = None


@dataclass
class AppleCalendar(Record):
    id: str = ""
    title: str = ""
    color: str = ""
    type: str = ""


@dataclass
class ParsedParticipants(Record):
    internal: list[str] = field(default_factory=list)
    external: list[str] = field(default_factory=list)


@dataclass
class AccountNoteCount(Record):
    account_id: str = ""
    account_name: str = ""
    note_count: int = 0


@dataclass
class Analytics(Record):
    total_notes: int = 0
    total_accounts: int = 0
    total_todos: int = 0
    todos_by_status: dict[str, int] = field(default_factory=dict)
    notes_by_account: list[AccountNoteCount] = field(default_factory=list)
    incomplete_count: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Analytics":
        analytics = super().from_api({k: v for k, v in data.items() if k != "notes_by_account"})
        analytics.notes_by_account = AccountNoteCount.many(data.get("notes_by_account"))
        return analytics


@dataclass
class IncompleteField(Record):
    note_id: str = ""
    note_title: str = ""
    account_name: str = ""
    missing_fields: list[str] = field(default_factory=list)


@dataclass
class SearchResult(Record):
    type: str = ""  # "note", "account" or "todo"
    id: str = ""
    title: str = ""
    snippet: str = ""
    account_id: str = ""
    account_name: str = ""


@dataclass
class CaptureResult(Record):
    id: str = ""
    type: str = ""
    title: str = ""
    account_id: str | None = None
    created_at: str = ""
