from __future__ import annotations

from typing import Any

from noted.models import TODO_STATUSES, Todo
from noted.store import CollectionStore, Derived, Writable


def group_by_status(todos: list[Todo]) -> dict[str, list[Todo]]:
    """Kanban columns. Todos with an unrecognised status land in ``not_started``."""
    board: dict[str, list[Todo]] = {status: [] for status in TODO_STATUSES}
    for todo in todos:
        board.get(todo.status, board["not_started"]).append(todo)
    return board


class TodoStore(CollectionStore[Todo]):
    name = "todos"

    def __init__(self, api) -> None:
        super().__init__(api)
        self.status_filter: str | None = None
        self.deleted: Writable[list[Todo]] = Writable([])
        self.by_status: Derived[dict[str, list[Todo]]] = Derived(self.items, group_by_status)
        self.pinned: Derived[list[Todo]] = Derived(self.items, lambda todos: [t for t in todos if t.pinned])

    async def load(self, status: str | None = None) -> bool:
        self.status_filter = status
        return await self._fetch(lambda: self.api.get_todos(status))

    async def refresh(self) -> bool:
        return await self.load(self.status_filter)

    async def load_deleted(self) -> bool:
        return await self._fetch(self.api.get_deleted_todos, self.deleted)

    async def create(self, title: str, **fields: Any) -> Todo:
        todo = await self.api.create_todo(title, **fields)
        await self.refresh()
        return todo

    async def update(self, todo_id: str, **changes: Any) -> Todo:
        todo = await self.api.update_todo(todo_id, **changes)
        self._replace(todo)
        return todo

    async def set_status(self, todo_id: str, status: str) -> Todo:
        if status not in TODO_STATUSES:
            raise ValueError(f"Unknown todo status: {status}")
        return await self.update(todo_id, status=status)

    async def delete(self, todo_id: str) -> None:
        await self.api.delete_todo(todo_id)
        await self.refresh()

    async def restore(self, todo_id: str) -> None:
        await self.api.restore_todo(todo_id)
        await self.refresh()
        await self.load_deleted()

    async def purge(self, todo_id: str) -> None:
        await self.api.permanent_delete_todo(todo_id)
        await self.load_deleted()

    async def toggle_pin(self, todo_id: str) -> bool:
        pinned = await self.api.toggle_todo_pin(todo_id)
        await self.refresh()
        return pinned

    async def link_note(self, todo_id: str, note_id: str) -> Todo:
        await self.api.link_todo_to_note(todo_id, note_id)
        todo = await self.api.get_todo(todo_id)
        self._replace(todo)
        return todo

    async def unlink_note(self, todo_id: str, note_id: str) -> Todo:
        await self.api.unlink_todo_from_note(todo_id, note_id)
        todo = await self.api.get_todo(todo_id)
        self._replace(todo)
        return todo

    def clear(self) -> None:
        super().clear()
        self.deleted.set([])
