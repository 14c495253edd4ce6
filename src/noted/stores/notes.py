from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Any

from noted.models import Attachment, Note, Tag
from noted.store import CollectionStore, Derived, Writable


class NoteStore(CollectionStore[Note]):
    name = "notes"

    def __init__(self, api) -> None:
        super().__init__(api)
        self.account_id: str | None = None
        self.selected: Writable[Note | None] = Writable(None)
        self.deleted: Writable[list[Note]] = Writable([])
        self.archived: Writable[list[Note]] = Writable([])
        self.pinned: Derived[list[Note]] = Derived(self.items, lambda notes: [n for n in notes if n.pinned])

    async def load(self, account_id: str | None = None) -> bool:
        self.account_id = account_id
        if account_id:
            return await self._fetch(lambda: self.api.get_notes_by_account(account_id))
        return await self._fetch(self.api.get_notes)

    async def refresh(self) -> bool:
        return await self.load(self.account_id)

    async def load_deleted(self) -> bool:
        return await self._fetch(self.api.get_deleted_notes, self.deleted)

    async def load_archived(self) -> bool:
        return await self._fetch(self.api.get_archived_notes, self.archived)

    async def select(self, note_id: str) -> bool:
        return await self._fetch(lambda: self.api.get_note(note_id), self.selected)

    async def create(self, title: str, account_id: str, **fields: Any) -> Note:
        note = await self.api.create_note(title, account_id, **fields)
        await self.refresh()
        return note

    async def update(self, note_id: str, **changes: Any) -> Note:
        note = await self.api.update_note(note_id, **changes)
        self._replace(note)
        current = self.selected.get()
        if current is not None and current.id == note_id:
            self.selected.set(note)
        return note

    async def delete(self, note_id: str) -> None:
        await self.api.delete_note(note_id)
        current = self.selected.get()
        if current is not None and current.id == note_id:
            self.selected.set(None)
        await self.refresh()

    async def restore(self, note_id: str) -> None:
        await self.api.restore_note(note_id)
        await self.refresh()
        await self.load_deleted()

    async def purge(self, note_id: str) -> None:
        await self.api.permanent_delete_note(note_id)
        await self.load_deleted()

    async def toggle_pin(self, note_id: str) -> bool:
        pinned = await self.api.toggle_note_pin(note_id)
        await self.refresh()
        return pinned

    async def toggle_archive(self, note_id: str) -> bool:
        archived = await self.api.toggle_note_archive(note_id)
        await self.refresh()
        await self.load_archived()
        return archived

    async def reorder(self, account_id: str, note_ids: list[str]) -> None:
        await self.api.reorder_notes(account_id, note_ids)
        await self.refresh()

    async def import_markdown(self, path: Path) -> dict:
        result = await self.api.import_markdown(path)
        await self.refresh()
        return result

    def clear(self) -> None:
        super().clear()
        self.selected.set(None)
        self.deleted.set([])
        self.archived.set([])


class TagStore(CollectionStore[Tag]):
    name = "tags"

    def __init__(self, api) -> None:
        super().__init__(api)
        self.note_tags: Writable[list[Tag]] = Writable([])
        self.note_id: str | None = None

    async def load(self) -> bool:
        return await self._fetch(self.api.get_tags)

    async def load_for_note(self, note_id: str) -> bool:
        self.note_id = note_id
        return await self._fetch(lambda: self.api.get_note_tags(note_id), self.note_tags)

    async def create(self, name: str, color: str | None = None) -> Tag:
        tag = await self.api.create_tag(name, color)
        await self.load()
        return tag

    async def update(self, tag_id: str, **changes: Any) -> Tag:
        tag = await self.api.update_tag(tag_id, **changes)
        self._replace(tag)
        return tag

    async def delete(self, tag_id: str) -> None:
        await self.api.delete_tag(tag_id)
        await self.load()
        if self.note_id:
            await self.load_for_note(self.note_id)
    async def add_to_note(self, note_id: str, tag_id: str) -> None:
        await self.api.add_tag_to_note(note_id, tag_id)
        await self.load_for_note(note_id)

    async def remove_from_note(self, note_id: str, tag_id: str) -> None:
        await self.api.remove_tag_from_note(note_id, tag_id)
        await self.load_for_note(note_id)

    def clear(self) -> None:
        super().clear()
        self.note_tags.set([])
        self.note_id = None


class AttachmentStore(CollectionStore[Attachment]):
    name = "attachments"

    async def load(self, note_id: str) -> bool:
        return await self._fetch(lambda: self.api.get_attachments(note_id))

    async def upload(self, note_id: str, path: Path, mime_type: str | None = None) -> Attachment:
        mime_type = mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        attachment = await self.api.upload_attachment(note_id, path.name, path.read_bytes(), mime_type)
        await self.load(note_id)
        return attachment

    async def delete(self, note_id: str, attachment_id: str) -> None:
        await self.api.delete_attachment(note_id, attachment_id)
        await self.load(note_id)

    def url(self, attachment: Attachment) -> str:
        return self.api.locator.attachment_url(attachment.filename)
