"""
Cascading Selector - Institution → Class → Section dependent choices

Selections live in ``values``; option lists live in ``options``. Option lists
are loaded by ``sync()``, which compares each source's upstream ids with the
ids it last loaded for. That makes loading a reaction to the selection state:
it behaves the same after an interactive ``select()`` and after an edit-mode
``load()`` that fills every level at once.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from sgcadmin.exceptions import ForbiddenError, SGCAdminError, banner_text
from sgcadmin.ids import resolve_id
from sgcadmin.logging_config import get_logger


logger = get_logger(__name__)

Loader = Callable[[Dict[str, str]], Awaitable[List[Any]]]

DEFAULT_CHAIN = ("institution", "class", "section")


class CascadeState(str, Enum):
    NO_INSTITUTION = "NoInstitution"
    INSTITUTION_SELECTED = "InstitutionSelected"
    CLASS_SELECTED = "ClassSelected"
    SECTION_SELECTED = "SectionSelected"


@dataclass
class OptionSource:
    """
    One dependent option list.

    ``depends_on`` names the selections the list is keyed on; the list is
    empty until all of them are set.
    """
    name: str
    depends_on: Tuple[str, ...]
    loader: Loader
    label: Optional[str] = None

    @property
    def display_label(self) -> str:
        return self.label or self.name


class CascadingSelector:
    """
    Usage:
        selector = CascadingSelector(
            sources=[OptionSource("classes", ("institution",), load_classes)],
            extra_clears={"institution": ("student",), "class": ("student",)},
        )
        await selector.select("institution", institution_id)
        selector.options["classes"]
    """

    def __init__(
        self,
        sources: Sequence[OptionSource],
        chain: Sequence[str] = DEFAULT_CHAIN,
        extra_clears: Optional[Dict[str, Sequence[str]]] = None,
        locked: Sequence[str] = (),
    ):
        self.chain = tuple(chain)
        self.sources = list(sources)
        self.extra_clears = {key: tuple(value) for key, value in (extra_clears or {}).items()}
        self.locked = set(locked)

        self.values: Dict[str, str] = {}
        self.options: Dict[str, List[Any]] = {source.name: [] for source in self.sources}
        self.errors: Dict[str, str] = {}
        self._loaded_keys: Dict[str, Optional[Tuple[str, ...]]] = {}
        self._lock = asyncio.Lock()

    # ==================== State ====================

    def get(self, level: str) -> str:
        return self.values.get(level, "")

    @property
    def state(self) -> CascadeState:
        institution, school_class, section = (self.get(level) for level in DEFAULT_CHAIN)
        if not institution:
            return CascadeState.NO_INSTITUTION
        if not school_class:
            return CascadeState.INSTITUTION_SELECTED
        if not section:
            return CascadeState.CLASS_SELECTED
        return CascadeState.SECTION_SELECTED

    def is_enabled(self, level: str) -> bool:
        """A level is selectable once every level above it has a value"""
        if level in self.locked:
            return False
        if level not in self.chain:
            return True
        index = self.chain.index(level)
        return all(self.get(upper) for upper in self.chain[:index])

    def _cleared_by(self, level: str) -> List[str]:
        cleared: List[str] = list(self.extra_clears.get(level, ()))
        if level in self.chain:
            for deeper in self.chain[self.chain.index(level) + 1:]:
                cleared.append(deeper)
                cleared.extend(self.extra_clears.get(deeper, ()))
        return cleared

    # ==================== Transitions ====================

    def assign(self, level: str, value: Any) -> List[str]:
        """
        Set one level and clear everything below it without loading.

        Returns the names of the fields that were cleared.
        """
        new_value = resolve_id(value)
        if level in self.locked and new_value != self.get(level):
            raise ForbiddenError(f"{level.capitalize()} is fixed for your account")
        if new_value == self.get(level):
            return []
        self.values[level] = new_value
        cleared = []
        for name in self._cleared_by(level):
            if self.values.get(name):
                cleared.append(name)
            self.values[name] = ""
        return cleared

    async def select(self, level: str, value: Any) -> List[str]:
        cleared = self.assign(level, value)
        await self.sync()
        return cleared

    async def load(self, values: Dict[str, Any]) -> None:
        """Populate several levels at once (edit mode) without clearing"""
        for level, value in values.items():
            self.values[level] = resolve_id(value)
        await self.sync()

    def lock(self, level: str, value: Any) -> None:
        """Pin a level, e.g. a non-super-admin's own institution"""
        self.values[level] = resolve_id(value)
        self.locked.add(level)

    # ==================== Loading ====================

    async def sync(self) -> None:
        """Load every option list whose upstream ids changed, in order"""
        async with self._lock:
            for source in self.sources:
                key = tuple(self.get(name) for name in source.depends_on)
                if not all(key):
                    self.options[source.name] = []
                    self._loaded_keys[source.name] = None
                    continue
                if self._loaded_keys.get(source.name) == key:
                    continue
                await self._load_source(source, key)

    async def _load_source(self, source: OptionSource, key: Tuple[str, ...]) -> None:
        upstream = {name: self.get(name) for name in source.depends_on}
        try:
            self.options[source.name] = await source.loader(upstream)
        except SGCAdminError as e:
            self.options[source.name] = []
            self._loaded_keys[source.name] = None
            self.errors[source.name] = banner_text(e, f"Failed to fetch {source.display_label}")
            logger.warning(f"Loading {source.name} for {upstream} failed: {e.message}")
            return
        self._loaded_keys[source.name] = key
        self.errors.pop(source.name, None)
        logger.debug(f"Loaded {len(self.options[source.name])} {source.name} for {upstream}")
