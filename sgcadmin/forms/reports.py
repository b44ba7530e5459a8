"""Report definition dialog"""

from typing import Any, Dict, Optional

from sgcadmin.forms.base import FieldSpec, FormBinding
from sgcadmin.models import FREQUENCIES, REPORT_FORMATS, REPORT_TYPES
from sgcadmin.resources import REPORTS
from sgcadmin.session import SessionContext


class ReportForm(FormBinding):
    descriptor = REPORTS
    redirects = False
    fields = (
        FieldSpec("name", "Name", required=True),
        FieldSpec("description", "Description"),
        FieldSpec("type", "Type", kind="choice", required=True, choices=REPORT_TYPES, default="institution"),
        FieldSpec("format", "Format", kind="choice", required=True, choices=REPORT_FORMATS, default="pdf"),
        FieldSpec("schedule.enabled", "Scheduled", kind="bool", default=False),
        FieldSpec("schedule.frequency", "Frequency", kind="choice", choices=FREQUENCIES, default="monthly"),
        FieldSpec("schedule.time", "Time", default="09:00"),
    )

    def __init__(self, session: Optional[SessionContext] = None, record_id: Optional[str] = None,
                 filters: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(session=session, record_id=record_id, **kwargs)
        self.filters: Dict[str, Any] = dict(filters or {})

    def after_load(self, record: Dict[str, Any]) -> None:
        if isinstance(record.get("filters"), dict):
            self.filters = dict(record["filters"])

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body["filters"] = dict(self.filters)
        return body

    @property
    def success_message(self) -> str:
        return "Report updated successfully" if self.is_edit else "Report created successfully"

    @property
    def failure_message(self) -> str:
        return f"Failed to {'update' if self.is_edit else 'create'} report"
