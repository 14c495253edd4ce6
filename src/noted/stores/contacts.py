from __future__ import annotations

from typing import Any

from noted.models import Contact, ContactStats, DomainGroup, Note
from noted.store import CollectionStore, Derived, Writable

CONTACT_FILTERS = ("internal", "external", "unlinked", "suggestions")
BULK_ACTIONS = ("delete", "set_internal", "set_account")


class ContactStore(CollectionStore[Contact]):
    """Contacts harvested from meetings, with the account-suggestion workflow."""

    name = "contacts"

    def __init__(self, api) -> None:
        super().__init__(api)
        self.filter: str | None = None
        self.account_id: str | None = None
        self.stats: Writable[ContactStats | None] = Writable(None)
        self.domain_groups: Writable[list[DomainGroup]] = Writable([])
        self.contact_notes: Writable[list[Note]] = Writable([])
        self.pending_suggestions: Derived[list[Contact]] = Derived(
            self.items, lambda contacts: [c for c in contacts if c.has_pending_suggestion]
        )

    async def load(self, filter: str | None = None, account_id: str | None = None) -> bool:
        if filter is not None and filter not in CONTACT_FILTERS:
            raise ValueError(f"Unknown contact filter: {filter}")
        self.filter, self.account_id = filter, account_id
        return await self._fetch(lambda: self.api.get_contacts(filter, account_id))

    async def refresh(self) -> bool:
        loaded = await self.load(self.filter, self.account_id)
        await self.load_stats()
        return loaded

    async def load_stats(self) -> bool:
        return await self._fetch(self.api.get_contact_stats, self.stats)

    async def load_domain_groups(self, filter: str | None = None, include_contacts: bool = False) -> bool:
        return await self._fetch(
            lambda: self.api.get_contact_domain_groups(filter, include_contacts), self.domain_groups
        )

    async def load_notes(self, contact_id: str) -> bool:
        return await self._fetch(lambda: self.api.get_contact_notes(contact_id), self.contact_notes)

    async def create(self, email: str, **fields: Any) -> Contact:
        contact = await self.api.create_contact(email, **fields)
        await self.refresh()
        return contact

    async def update(self, contact_id: str, **changes: Any) -> Contact:
        contact = await self.api.update_contact(contact_id, **changes)
        self._replace(contact)
        return contact

    async def delete(self, contact_id: str) -> None:
        await self.api.delete_contact(contact_id)
        await self.refresh()

    async def confirm_suggestion(self, contact_id: str, confirm: bool = True) -> Contact:
        """Accept the suggested account (or reject it) and replace the record."""
        await self.api.confirm_contact_suggestion(contact_id, confirm)
        contact = await self.api.get_contact(contact_id)
        self._replace(contact)
        await self.load_stats()
        return contact

    async def link(self, contact_id: str, account_id: str) -> Contact:
        await self.api.link_contact_to_account(contact_id, account_id)
        contact = await self.api.get_contact(contact_id)
        self._replace(contact)
        await self.load_stats()
        return contact

    async def bulk(self, contact_ids: list[str], action: str, value: dict[str, Any] | None = None) -> None:
        if action not in BULK_ACTIONS:
            raise ValueError(f"Unknown bulk action: {action}")
        if not contact_ids:
            raise ValueError("No contacts selected")
        await self.api.bulk_contacts(contact_ids, action, value)
        await self.refresh()

    async def link_domain(self, domain: str, account_id: str) -> int:
        result = await self.api.link_domain_to_account(domain, account_id)
        await self.refresh()
        return int(result.get("contacts_updated", 0))

    async def create_account_from_domain(self, domain: str, account_name: str | None = None) -> dict:
        result = await self.api.create_account_from_domain(domain, account_name)
        await self.refresh()
        return result

    def clear(self) -> None:
        super().clear()
        self.stats.set(None)
        self.domain_groups.set([])
        self.contact_notes.set([])
