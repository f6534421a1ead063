"""
Catalogue service: query state plus the filtered/sorted tool view.

``filter_and_sort`` is a pure function of (tools, filters, search query,
sort option). ``Catalogue`` owns those four cells and recomputes the view
synchronously whenever one of them changes.
"""

import re
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .loader import DatasetLoader
from .models import Category, FilterOptions, SortOption, Tool

Listener = Callable[[List[Tool]], None]


def name_key(name: str):
    """Case-insensitive order; on ties lowercase sorts before uppercase."""
    return name.casefold(), name.swapcase()


def added_at_timestamp(value: Optional[str]) -> float:
    """Epoch seconds for ``added_at``; absent or unparseable sorts first."""
    if not value:
        return float("-inf")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return float("-inf")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def _sort_key(field: str):
    if field == "stars":
        return lambda tool: tool.stars or 0
    if field == "name":
        return lambda tool: name_key(tool.name)
    return lambda tool: added_at_timestamp(tool.added_at)


def matches_search(tool: Tool, query: str) -> bool:
    """``query`` must already be trimmed and lower-cased."""
    return (
        query in tool.name.lower()
        or query in tool.summary.lower()
        or any(query in tag.lower() for tag in tool.tags)
    )


def filter_and_sort(tools: Sequence[Tool], filters: FilterOptions,
                    search_query: str, sort_option: SortOption) -> List[Tool]:
    if not tools:
        return []

    filtered = list(tools)

    if filters.categories:
        selected = set(filters.categories)
        filtered = [t for t in filtered if selected.intersection(t.categories)]

    if filters.platforms:
        selected = set(filters.platforms)
        filtered = [t for t in filtered if selected.intersection(t.platforms)]

    if filters.licenses:
        filtered = [t for t in filtered if t.license in filters.licenses]

    if filters.maturity:
        filtered = [t for t in filtered if t.maturity in filters.maturity]

    query = search_query.strip().lower()
    if query:
        filtered = [t for t in filtered if matches_search(t, query)]

    # sorted() is stable in both directions, so ties keep dataset order
    return sorted(
        filtered,
        key=_sort_key(sort_option.field),
        reverse=sort_option.direction == "desc",
    )


def format_category(category: str) -> str:
    """``"web_app"`` -> ``"Web App"``."""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), category.replace("_", " "))


class Catalogue:
    def __init__(self, loader: Optional[DatasetLoader] = None):
        self.loader = loader or DatasetLoader()
        self._tools: List[Tool] = []
        self._filters = FilterOptions()
        self._search_query = ""
        self._sort_option = SortOption()
        self._result: List[Tool] = []
        self._listeners: List[Listener] = []

    async def start(self) -> List[Tool]:
        """Load the dataset into the tools cell."""
        tools = await self.loader.load()
        self._tools = tools
        self._recompute()
        return tools

    # ─── State cells ──────────────────────────────────────────────────────────

    @property
    def tools(self) -> List[Tool]:
        return list(self._tools)

    @property
    def filters(self) -> FilterOptions:
        return self._filters

    @property
    def search_query(self) -> str:
        return self._search_query

    @property
    def sort_option(self) -> SortOption:
        return self._sort_option

    @property
    def filtered_tools(self) -> List[Tool]:
        return list(self._result)

    def set_filters(self, filters: FilterOptions) -> None:
        self._filters = filters
        self._recompute()

    def set_search_query(self, query: Optional[str]) -> None:
        self._search_query = query or ""
        self._recompute()

    def set_sort_option(self, sort_option: SortOption) -> None:
        self._sort_option = sort_option
        self._recompute()

    def clear_filters(self) -> None:
        self._filters = FilterOptions()
        self._search_query = ""
        self._sort_option = SortOption()
        self._recompute()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the current view now and after every change."""
        self._listeners.append(listener)
        listener(self.filtered_tools)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _recompute(self) -> None:
        self._result = filter_and_sort(self._tools, self._filters, self._search_query, self._sort_option)
        for listener in list(self._listeners):
            listener(self.filtered_tools)

    # ─── Lookups ──────────────────────────────────────────────────────────────

    def tool_by_id(self, tool_id: str) -> Optional[Tool]:
        return next((t for t in self._tools if t.id == tool_id), None)

    def _resolve(self, ids: Sequence[str]) -> List[Tool]:
        wanted = set(ids)
        return [t for t in self._tools if t.id in wanted]

    def related_tools(self, tool: Tool) -> List[Tool]:
        return self._resolve(tool.related_tools)

    def similar_tools(self, tool: Tool) -> List[Tool]:
        return self._resolve(tool.similar_tools)

    def available_categories(self) -> List[str]:
        return sorted({c for t in self._tools for c in t.categories})

    def available_platforms(self) -> List[str]:
        return sorted({p for t in self._tools for p in t.platforms})

    def available_licenses(self) -> List[str]:
        return sorted({t.license for t in self._tools})

    async def categories(self) -> List[Category]:
        return await self.loader.load_categories()

    async def category_by_id(self, category_id: str) -> Optional[Category]:
        categories = await self.loader.load_categories()
        return next((c for c in categories if c.id == category_id), None)
