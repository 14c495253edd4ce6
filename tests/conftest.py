from __future__ import annotations

import uuid
from datetime import datetime, timezone

import httpx
import pytest
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from noted.api import ApiClient, BackendLocator
from noted.config import Settings
from noted.context import AppContext


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _not_found(what: str) -> JSONResponse:
    return JSONResponse({"error": f"{what} not found"}, status_code=404)


def create_backend() -> FastAPI:
    """In-memory stand-in for the Noted REST backend."""
    app = FastAPI()
    db: dict[str, dict[str, dict]] = {
        "accounts": {},
        "notes": {},
        "todos": {},
        "tags": {},
        "contacts": {},
    }
    calendar = {"connected": True, "events": []}
    calls: list[tuple[str, str]] = []
    app.state.db = db
    app.state.calendar = calendar
    app.state.calls = calls

    @app.middleware("http")
    async def record(request: Request, call_next):
        calls.append((request.method, request.url.path))
        return await call_next(request)

    api = APIRouter(prefix="/api")

    def live(table: str) -> list[dict]:
        return [r for r in db[table].values() if not r.get("deleted")]

    def insert(table: str, payload: dict) -> dict:
        record = {"id": str(uuid.uuid4()), "created_at": _now(), "updated_at": _now(), **payload}
        db[table][record["id"]] = record
        return record

    # Accounts

    @api.get("/accounts")
    async def get_accounts():
        return live("accounts")

    @api.get("/accounts/deleted")
    async def get_deleted_accounts():
        return [r for r in db["accounts"].values() if r.get("deleted")]

    @api.get("/accounts/{account_id}")
    async def get_account(account_id: str):
        account = db["accounts"].get(account_id)
        if not account or account.get("deleted"):
            return _not_found("Account")
        return account

    @api.post("/accounts", status_code=201)
    async def create_account(payload: dict):
        if not payload.get("name"):
            return JSONResponse({"error": "name is required"}, status_code=400)
        return insert("accounts", {"account_owner": "", **payload})

    @api.put("/accounts/{account_id}")
    async def update_account(account_id: str, payload: dict):
        account = db["accounts"].get(account_id)
        if not account:
            return _not_found("Account")
        account.update(payload, updated_at=_now())
        return account

    @api.delete("/accounts/{account_id}")
    async def delete_account(account_id: str):
        if account_id not in db["accounts"]:
            return _not_found("Account")
        db["accounts"][account_id]["deleted"] = True
        return {"message": "Account deleted"}

    @api.post("/accounts/{account_id}/restore")
    async def restore_account(account_id: str):
        db["accounts"][account_id].pop("deleted", None)
        return {"message": "Account restored"}

    @api.get("/accounts/{account_id}/notes")
    async def get_notes_by_account(account_id: str):
        return [n for n in live("notes") if n["account_id"] == account_id]

    # Notes

    @api.get("/notes")
    async def get_notes():
        return [n for n in live("notes") if not n.get("archived")]

    @api.get("/notes/deleted")
    async def get_deleted_notes():
        return [n for n in db["notes"].values() if n.get("deleted")]

    @api.get("/notes/{note_id}")
    async def get_note(note_id: str):
        note = db["notes"].get(note_id)
        if not note:
            return _not_found("Note")
        return note

    @api.post("/notes", status_code=201)
    async def create_note(payload: dict):
        defaults = {"template_type": "initial", "internal_participants": [], "external_participants": [], "content": ""}
        return insert("notes", {**defaults, **payload})

    @api.put("/notes/{note_id}")
    async def update_note(note_id: str, payload: dict):
        note = db["notes"][note_id]
        note.update(payload, updated_at=_now())
        return note

    @api.delete("/notes/{note_id}")
    async def delete_note(note_id: str):
        db["notes"][note_id]["deleted"] = True
        return {"message": "Note deleted"}

    @api.post("/notes/{note_id}/restore")
    async def restore_note(note_id: str):
        db["notes"][note_id].pop("deleted", None)
        return {"message": "Note restored"}

    @api.post("/notes/{note_id}/pin")
    async def toggle_note_pin(note_id: str):
        note = db["notes"][note_id]
        note["pinned"] = not note.get("pinned", False)
        return {"pinned": note["pinned"]}

    # Todos

    @api.get("/todos")
    async def get_todos(status: str | None = None):
        rows = live("todos")
        if status:
            rows = [t for t in rows if t["status"] == status]
        return rows

    @api.get("/todos/{todo_id}")
    async def get_todo(todo_id: str):
        todo = db["todos"].get(todo_id)
        if not todo:
            return _not_found("Todo")
        return todo

    @api.post("/todos", status_code=201)
    async def create_todo(payload: dict):
        note_id = payload.pop("note_id", None)
        todo = insert("todos", {"status": "not_started", "priority": "medium", "description": "", **payload})
        todo["notes"] = [{"id": note_id, "title": db["notes"][note_id]["title"]}] if note_id else []
        return todo

    @api.put("/todos/{todo_id}")
    async def update_todo(todo_id: str, payload: dict):
        todo = db["todos"][todo_id]
        todo.update(payload, updated_at=_now())
        return todo

    @api.delete("/todos/{todo_id}")
    async def delete_todo(todo_id: str):
        db["todos"][todo_id]["deleted"] = True
        return {"message": "Todo deleted"}

    @api.post("/todos/{todo_id}/notes/{note_id}")
    async def link_todo(todo_id: str, note_id: str):
        todo = db["todos"][todo_id]
        todo.setdefault("notes", []).append({"id": note_id, "title": db["notes"][note_id]["title"]})
        return {"message": "Todo linked to note"}

    # Search, analytics, data

    @api.get("/search")
    async def search(q: str = ""):
        if not q:
            return JSONResponse({"error": "Query parameter 'q' is required"}, status_code=400)
        results = []
        for kind, table in (("account", "accounts"), ("note", "notes"), ("todo", "todos")):
            name_key = "name" if table == "accounts" else "title"
            for row in live(table):
                if q.lower() in row[name_key].lower():
                    results.append({"type": kind, "id": row["id"], "title": row[name_key]})
        return results

    @api.get("/analytics")
    async def analytics():
        todos = live("todos")
        by_status: dict[str, int] = {}
        for t in todos:
            by_status[t["status"]] = by_status.get(t["status"], 0) + 1
        return {
            "total_notes": len(live("notes")),
            "total_accounts": len(live("accounts")),
            "total_todos": len(todos),
            "todos_by_status": by_status,
            "notes_by_account": [],
            "incomplete_count": 0,
        }

    @api.post("/quick-capture", status_code=201)
    async def quick_capture(payload: dict):
        if payload["type"] == "note":
            account_id = payload.get("account_id")
            if not account_id:
                unassigned = [a for a in live("accounts") if a["name"] == "Unassigned"]
                account_id = unassigned[0]["id"] if unassigned else insert("accounts", {"name": "Unassigned"})["id"]
            note = insert(
                "notes",
                {"title": payload["title"], "account_id": account_id, "template_type": "quick",
                 "content": payload.get("content", "")},
            )
            return {"id": note["id"], "type": "note", "title": note["title"], "account_id": account_id}
        todo = insert(
            "todos",
            {"title": payload["title"], "status": "not_started", "priority": payload.get("priority") or "medium"},
        )
        return {"id": todo["id"], "type": "todo", "title": todo["title"]}

    @api.get("/export")
    async def export_all():
        return {name: list(rows.values()) for name, rows in db.items()} | {"version": "1.0"}

    @api.delete("/data")
    async def clear_all():
        for rows in db.values():
            rows.clear()
        return {"message": "All data cleared"}

    # Calendar

    @api.get("/calendar/config")
    async def calendar_config():
        return {"connected": calendar["connected"], "type": "apple"} if calendar["connected"] else {"connected": False}

    @api.get("/calendar/events")
    async def calendar_events(start: str = "", end: str = ""):
        calendar["last_window"] = (start, end)
        return calendar["events"]

    @api.delete("/calendar/disconnect")
    async def calendar_disconnect():
        calendar["connected"] = False
        return {"message": "Calendar disconnected"}

    # Contacts

    @api.get("/contacts")
    async def get_contacts(filter: str = ""):
        rows = list(db["contacts"].values())
        if filter == "suggestions":
            rows = [c for c in rows if c.get("suggested_account_id") and not c.get("suggestion_confirmed")]
        return rows

    @api.get("/contacts/stats")
    async def contact_stats():
        rows = list(db["contacts"].values())
        return {
            "total_contacts": len(rows),
            "internal_contacts": sum(1 for c in rows if c.get("is_internal")),
            "external_contacts": sum(1 for c in rows if not c.get("is_internal")),
            "linked_contacts": sum(1 for c in rows if c.get("account_id")),
            "pending_suggestions": sum(
                1 for c in rows if c.get("suggested_account_id") and not c.get("suggestion_confirmed")
            ),
        }

    @api.get("/contacts/{contact_id}")
    async def get_contact(contact_id: str):
        contact = db["contacts"].get(contact_id)
        if not contact:
            return _not_found("Contact")
        return contact

    @api.post("/contacts/{contact_id}/confirm-suggestion")
    async def confirm_suggestion(contact_id: str, payload: dict):
        contact = db["contacts"][contact_id]
        if payload.get("confirm"):
            contact["account_id"] = contact["suggested_account_id"]
        else:
            contact["suggested_account_id"] = None
        contact["suggestion_confirmed"] = True
        return {"message": "Suggestion processed"}

    @api.post("/contacts/bulk")
    async def bulk_contacts(payload: dict):
        for contact_id in payload["contact_ids"]:
            if payload["action"] == "delete":
                db["contacts"].pop(contact_id, None)
        return {"message": "Bulk operation completed"}

    app.include_router(api)
    return app


@pytest.fixture
def backend():
    return create_backend()


@pytest.fixture
def api(backend):
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=backend))
    return ApiClient(BackendLocator(), http=http)


@pytest.fixture
def ctx(api, tmp_path):
    return AppContext(Settings(data_dir=tmp_path), api=api)


def seed(backend: FastAPI, table: str, **record) -> dict:
    record.setdefault("id", str(uuid.uuid4()))
    record.setdefault("created_at", _now())
    record.setdefault("updated_at", _now())
    backend.state.db[table][record["id"]] = record
    return record
