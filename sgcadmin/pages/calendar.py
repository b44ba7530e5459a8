"""Academic calendar"""

from datetime import date
from typing import Any, List, Optional

from sgcadmin.forms.calendar import CalendarEventForm
from sgcadmin.pages.base import ListPage
from sgcadmin.resources import CALENDAR


class CalendarPage(ListPage):
    descriptor = CALENDAR
    form_class = CalendarEventForm

    @property
    def selected_date(self) -> Optional[str]:
        return self.controller.query.get("date") or None

    async def select_date(self, day: Any) -> None:
        """Show only events that span ``day`` (ISO date or date object)"""
        value = day.isoformat() if isinstance(day, date) else str(day)[:10]
        await self.apply_filters(date=value)

    async def clear_date(self) -> None:
        await self.apply_filters(date=None)

    def events_on(self, day: Any) -> List[Any]:
        value = day.isoformat() if isinstance(day, date) else str(day)[:10]
        return [event for event in self.controller.items if event.covers(value)]
