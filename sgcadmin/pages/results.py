"""Results list with publish and the overview statistics"""

from typing import Any, Dict

from sgcadmin.exceptions import SGCAdminError
from sgcadmin.forms.results import ResultForm
from sgcadmin.logging_config import get_logger
from sgcadmin.mutations import MutationResult
from sgcadmin.pages.base import ListPage
from sgcadmin.query import is_empty
from sgcadmin.resources import RESULTS


logger = get_logger(__name__)

STATS_FILTERS = ("institution", "class", "examType")


class ResultsPage(ListPage):
    descriptor = RESULTS
    form_class = ResultForm

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.stats: Dict[str, Any] = {}

    async def open(self) -> None:
        await super().open()
        await self.load_stats()

    async def load_stats(self) -> Dict[str, Any]:
        """Overview figures for the current filters; failures keep the old figures"""
        params = {
            key: self.controller.query.get(key)
            for key in STATS_FILTERS
            if not is_empty(self.controller.query.get(key))
        }
        try:
            response = await self.api.get("results/stats/overview", params=params)
        except SGCAdminError as e:
            logger.warning(f"Loading result statistics failed: {e.message}")
            return self.stats
        self.stats = response.data if isinstance(response.data, dict) else {}
        return self.stats

    async def apply_filters(self, **filters: Any) -> None:
        await super().apply_filters(**filters)
        await self.load_stats()

    async def reload(self) -> None:
        await super().reload()
        await self.load_stats()

    async def publish(self, record_id: str) -> MutationResult:
        result = await self.executor.action(self.descriptor, record_id, "publish")
        return await self._finish(result, "Result published successfully", "Failed to publish result")
