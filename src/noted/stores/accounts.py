from __future__ import annotations

from typing import Any

from noted.models import Account, Activity
from noted.store import CollectionStore, Writable


class AccountStore(CollectionStore[Account]):
    name = "accounts"

    def __init__(self, api) -> None:
        super().__init__(api)
        self.deleted: Writable[list[Account]] = Writable([])

    async def load(self) -> bool:
        return await self._fetch(self.api.get_accounts)

    async def load_deleted(self) -> bool:
        return await self._fetch(self.api.get_deleted_accounts, self.deleted)

    async def create(self, name: str, **fields: Any) -> Account:
        account = await self.api.create_account(name, **fields)
        await self.load()
        return account

    async def update(self, account_id: str, **changes: Any) -> Account:
        account = await self.api.update_account(account_id, **changes)
        self._replace(account)
        return account

    async def delete(self, account_id: str) -> None:
        await self.api.delete_account(account_id)
        await self.load()

    async def restore(self, account_id: str) -> None:
        await self.api.restore_account(account_id)
        await self.load()
        await self.load_deleted()

    async def purge(self, account_id: str) -> None:
        """Permanently delete a soft-deleted account."""
        await self.api.permanent_delete_account(account_id)
        await self.load_deleted()

    def clear(self) -> None:
        super().clear()
        self.deleted.set([])


class ActivityStore(CollectionStore[Activity]):
    """Audit trail of one account, newest first as returned by the server."""

    name = "activities"

    def __init__(self, api) -> None:
        super().__init__(api)
        self.account_id: str | None = None

    async def load(self, account_id: str, limit: int | None = None) -> bool:
        self.account_id = account_id
        return await self._fetch(lambda: self.api.get_activities(account_id, limit))

    async def log(self, account_id: str, type: str, title: str, **fields: Any) -> Activity:
        activity = await self.api.create_activity(account_id, type, title, **fields)
        if self.account_id == account_id:
            await self.load(account_id)
        return activity

    def clear(self) -> None:
        super().clear()
        self.account_id = None
