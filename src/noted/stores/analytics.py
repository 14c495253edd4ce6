from __future__ import annotations

from noted.models import Analytics, IncompleteField
from noted.store import CollectionStore, Writable


class AnalyticsStore(CollectionStore[IncompleteField]):
    """Server-side aggregates; ``items`` holds notes with missing fields."""

    name = "analytics"

    def __init__(self, api) -> None:
        super().__init__(api)
        self.summary: Writable[Analytics | None] = Writable(None)

    async def load(self) -> bool:
        return await self._fetch(self.api.get_analytics, self.summary)

    async def load_incomplete(self) -> bool:
        return await self._fetch(self.api.get_incomplete_fields)

    def clear(self) -> None:
        super().clear()
        self.summary.set(None)
