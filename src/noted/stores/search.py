from __future__ import annotations

from noted.models import SearchResult
from noted.store import CollectionStore, Writable


class SearchStore(CollectionStore[SearchResult]):
    """Results of the latest query.

    Typing produces overlapping requests; only the newest response lands in
    ``items``.
    """

    name = "search"

    def __init__(self, api) -> None:
        super().__init__(api)
        self.query: Writable[str] = Writable("")

    async def search(self, query: str) -> bool:
        if not query.strip():
            self.clear()
            return False
        self.query.set(query)
        return await self._fetch(lambda: self.api.search(query.strip()))

    def clear(self) -> None:
        super().clear()
        self.query.set("")
