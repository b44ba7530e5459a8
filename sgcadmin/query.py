"""
Query State - filter values and pagination cursor for one resource list
"""

from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode


Listener = Callable[["QueryState"], None]


def is_empty(value: Any) -> bool:
    """None, blank strings and empty collections are never sent"""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def _serialize(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set)):
        return ",".join(str(v) for v in value)
    return value


class QueryState:
    """
    Current filters and page of one list.

    Contract:
      - any filter change resets ``page`` to 0
      - a page-size change also resets ``page`` to 0
      - each call that changes something notifies subscribers exactly once
    """

    def __init__(self, filters: Optional[Dict[str, Any]] = None, page_size: int = 10):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._filters: Dict[str, Any] = dict(filters or {})
        self.page = 0
        self.page_size = page_size
        self._listeners: List[Listener] = []

    # ==================== Subscriptions ====================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns the unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ==================== Filters ====================

    @property
    def filters(self) -> Dict[str, Any]:
        return dict(self._filters)

    def get(self, key: str, default: Any = None) -> Any:
        return self._filters.get(key, default)

    def set_filter(self, key: str, value: Any) -> bool:
        """Set one filter; returns False when nothing changed"""
        return self.update(**{key: value})

    def update(self, **values: Any) -> bool:
        """Set several filters as one change"""
        changed = False
        for key, value in values.items():
            if self._filters.get(key) != value:
                self._filters[key] = value
                changed = True
        if changed:
            self.page = 0
            self._notify()
        return changed

    def clear_filters(self, keep: tuple = ()) -> bool:
        cleared = {key: None for key, value in self._filters.items()
                   if key not in keep and not is_empty(value)}
        return self.update(**cleared) if cleared else False

    # ==================== Pagination ====================

    def set_page(self, page: int) -> bool:
        page = max(0, page)
        if page == self.page:
            return False
        self.page = page
        self._notify()
        return True

    def set_page_size(self, page_size: int) -> bool:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        if page_size == self.page_size:
            return False
        self.page_size = page_size
        self.page = 0
        self._notify()
        return True

    def page_bounds(self) -> tuple:
        start = self.page * self.page_size
        return start, start + self.page_size

    # ==================== Serialization ====================

    def to_params(self, include_pagination: bool = False,
                  exclude: tuple = ()) -> Dict[str, Any]:
        """Non-empty filters (and optionally page/limit) as request params"""
        params = {
            key: _serialize(value)
            for key, value in self._filters.items()
            if key not in exclude and not is_empty(value)
        }
        if include_pagination:
            params["page"] = self.page + 1
            params["limit"] = self.page_size
        return params

    def to_query_string(self, include_pagination: bool = False, exclude: tuple = ()) -> str:
        return urlencode(self.to_params(include_pagination, exclude))

    def __repr__(self) -> str:
        return f"QueryState(filters={self._filters!r}, page={self.page}, page_size={self.page_size})"
