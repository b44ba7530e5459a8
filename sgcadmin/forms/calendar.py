"""Calendar event dialog"""

from datetime import date
from typing import Any, Dict, Optional

from sgcadmin.exceptions import LocalValidationError
from sgcadmin.forms.base import FieldSpec, FormBinding
from sgcadmin.models import EVENT_TYPES, FREQUENCIES
from sgcadmin.resources import CALENDAR


class CalendarEventForm(FormBinding):
    descriptor = CALENDAR
    redirects = False
    fields = (
        FieldSpec("title", "Title", required=True),
        FieldSpec("eventType", "Type", kind="choice", required=True, choices=EVENT_TYPES, default="event"),
        FieldSpec("startDate", "Start Date", kind="date", required=True),
        FieldSpec("endDate", "End Date", kind="date", required=True),
        FieldSpec("startTime", "Start Time", default="09:00"),
        FieldSpec("endTime", "End Time", default="17:00"),
        FieldSpec("location", "Location"),
        FieldSpec("description", "Description"),
        FieldSpec("isRecurring", "Recurring", kind="bool", default=False),
        FieldSpec("recurrence.frequency", "Repeats", kind="choice", choices=FREQUENCIES, default="weekly"),
        FieldSpec("recurrence.interval", "Every", kind="number", default=1),
    )

    def __init__(self, *args, today: Optional[date] = None, **kwargs):
        super().__init__(*args, **kwargs)
        today_iso = (today or date.today()).isoformat()
        self.values["startDate"] = today_iso
        self.values["endDate"] = today_iso

    def after_load(self, record: Dict[str, Any]) -> None:
        if not record.get("eventType") and record.get("type"):
            self.values["eventType"] = record["type"]

    def check(self) -> None:
        if str(self.get("endDate"))[:10] < str(self.get("startDate"))[:10]:
            raise LocalValidationError("End date cannot be before start date", field="endDate")

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if not body.get("isRecurring"):
            body.pop("recurrence", None)
        return body

    @property
    def success_message(self) -> str:
        return "Event updated successfully" if self.is_edit else "Event created successfully"

    @property
    def failure_message(self) -> str:
        return "Failed to save event"
