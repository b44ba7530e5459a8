"""
Resource List Controller - fetch, filter and paginate one backend collection

A controller owns its items exclusively. It re-fetches whenever its QueryState
changes, tags each request with a sequence number so only the newest response
is applied, and ignores anything that arrives after ``dispose()``.
"""

import asyncio
from typing import Any, Callable, List, Optional, Set

from pydantic import ValidationError

from sgcadmin.api_client import ApiClient
from sgcadmin.exceptions import ErrorKind, ForbiddenError, SGCAdminError, banner_text
from sgcadmin.logging_config import get_logger
from sgcadmin.query import QueryState, is_empty
from sgcadmin.resources import ResourceDescriptor, find_by_id
from sgcadmin.session import SessionContext


logger = get_logger(__name__)

ErrorHook = Callable[[SGCAdminError], None]


class ResourceListController:
    """
    Generic list controller configured by a ResourceDescriptor.

    Usage:
        controller = ResourceListController(RESULTS, api, session=session)
        await controller.start()               # initial load, auto-refresh on
        controller.set_filter("status", "draft")
        await controller.wait_idle()
        for result in controller.visible_items:
            ...
        controller.dispose()
    """

    def __init__(
        self,
        descriptor: ResourceDescriptor,
        api: ApiClient,
        query: Optional[QueryState] = None,
        session: Optional[SessionContext] = None,
        page_size: int = 10,
        on_error: Optional[ErrorHook] = None,
    ):
        self.descriptor = descriptor
        self.api = api
        self.session = session
        self.query = query or QueryState(page_size=page_size)
        self.on_error = on_error

        self.items: List[Any] = []
        self.loading = False
        self.error: Optional[ErrorKind] = None
        self.error_message: Optional[str] = None
        self.institution_locked = False

        self._server_total: Optional[int] = None
        self._seq = 0
        self._disposed = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._tasks: Set[asyncio.Task] = set()

        self._apply_session_scope()

    # ==================== Role scoping ====================

    def _apply_session_scope(self) -> None:
        if not (self.descriptor.institution_scoped and self.session):
            return
        institution_id, locked = self.session.institution_filter()
        self.institution_locked = locked and bool(institution_id)
        if institution_id and (locked or is_empty(self.query.get("institution"))):
            # No listeners yet, so this does not trigger a request
            self.query.set_filter("institution", institution_id)

    # ==================== Filters ====================

    def _check_filter(self, key: str) -> None:
        if key == "institution" and self.institution_locked:
            raise ForbiddenError("Institution is fixed for your account")
        if not self.descriptor.accepts(key):
            raise ValueError(f"{self.descriptor.label} cannot be filtered by '{key}'")

    def set_filter(self, key: str, value: Any) -> bool:
        self._check_filter(key)
        return self.query.set_filter(key, value)

    def update_filters(self, **values: Any) -> bool:
        for key in values:
            self._check_filter(key)
        return self.query.update(**values)

    # ==================== Lifecycle ====================

    async def start(self) -> bool:
        """Subscribe to query changes and perform the initial load"""
        if self._unsubscribe is None:
            self._unsubscribe = self.query.subscribe(self._on_query_change)
        return await self.refresh()

    def dispose(self) -> None:
        """Stop reacting to changes; in-flight responses will be discarded"""
        self._disposed = True
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _on_query_change(self, query: QueryState) -> None:
        if self._disposed:
            return
        self._schedule_refresh()

    def _schedule_refresh(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every scheduled refresh to finish"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ==================== Fetching ====================

    def _request_params(self) -> dict:
        params = self.query.to_params(
            include_pagination=self.descriptor.server_pagination,
            exclude=tuple(self.descriptor.local_filters),
        )
        allowed = set(self.descriptor.server_filters) | {"page", "limit"}
        return {key: value for key, value in params.items() if key in allowed}

    def _is_stale(self, seq: int) -> bool:
        return self._disposed or seq != self._seq

    def _parse(self, raw: Any) -> Optional[Any]:
        try:
            return self.descriptor.model.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping malformed {self.descriptor.singular} row: {e}")
            return None

    async def refresh(self) -> bool:
        """
        GET the collection with the current query.

        Returns True when this response was applied. On failure ``error`` is
        set and the previous items stay visible.
        """
        if self._disposed:
            return False

        self._seq += 1
        seq = self._seq
        params = self._request_params()
        self.loading = True

        try:
            response = await self.api.get(self.descriptor.endpoint, params=params)
        except SGCAdminError as e:
            if self._is_stale(seq):
                logger.debug(f"Discarding stale {self.descriptor.name} error (request #{seq})")
                return False
            self.loading = False
            self.error = e.kind
            self.error_message = banner_text(e, f"Failed to fetch {self.descriptor.label}")
            logger.warning(f"Listing {self.descriptor.name} failed: {e.kind.value} {self.error_message}")
            if self.on_error:
                self.on_error(e)
            return False

        if self._is_stale(seq):
            logger.debug(f"Discarding stale {self.descriptor.name} response (request #{seq})")
            return False

        records = [self._parse(raw) for raw in response.items]
        self.items = [record for record in records if record is not None]
        self._server_total = response.total
        self.loading = False
        self.error = None
        self.error_message = None
        return True

    # ==================== Views ====================

    @property
    def filtered_items(self) -> List[Any]:
        """Items after the descriptor's client-side predicates"""
        records = self.items
        for key, predicate in self.descriptor.local_filters.items():
            value = self.query.get(key)
            if not is_empty(value):
                records = [record for record in records if predicate(record, value)]
        return records

    @property
    def total(self) -> int:
        if self.descriptor.server_pagination and self._server_total is not None:
            return self._server_total
        return len(self.filtered_items)

    @property
    def visible_items(self) -> List[Any]:
        """The current page"""
        if self.descriptor.server_pagination:
            return list(self.items)
        start, end = self.query.page_bounds()
        return self.filtered_items[start:end]

    @property
    def page_count(self) -> int:
        if self.total == 0:
            return 1
        return (self.total + self.query.page_size - 1) // self.query.page_size

    def find(self, record_id: str) -> Optional[Any]:
        return find_by_id(self.items, record_id)

    def dismiss_error(self) -> None:
        self.error = None
        self.error_message = None
