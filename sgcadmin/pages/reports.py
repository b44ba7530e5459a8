"""Report definitions and on-demand generation"""

from typing import Optional

from pydantic import ValidationError

from sgcadmin.exceptions import ErrorKind
from sgcadmin.forms.reports import ReportForm
from sgcadmin.logging_config import get_logger
from sgcadmin.models import GeneratedReport
from sgcadmin.pages.base import ListPage
from sgcadmin.resources import REPORTS


logger = get_logger(__name__)


class ReportsPage(ListPage):
    descriptor = REPORTS
    form_class = ReportForm

    async def generate(self, record_id: str) -> Optional[GeneratedReport]:
        """Run a report; the output is shown, never stored"""
        result = await self.executor.action(self.descriptor, record_id, "generate")
        if not result.ok:
            if result.error == ErrorKind.UNAUTHORIZED:
                self.unauthorized = True
            self.banners.error(result.banner("Failed to generate report"))
            return None
        try:
            return GeneratedReport.model_validate(result.data or {})
        except ValidationError as e:
            logger.warning(f"Unexpected report output: {e}")
            self.banners.error("Failed to generate report")
            return None
