"""Page objects, one per admin screen"""

from typing import Dict, Type

from sgcadmin.pages.academics import ClassesPage, DepartmentsPage, GroupsPage, SectionsPage
from sgcadmin.pages.admissions import AdmissionsPage
from sgcadmin.pages.base import ListPage
from sgcadmin.pages.calendar import CalendarPage
from sgcadmin.pages.dashboard import DashboardPage
from sgcadmin.pages.institutions import InstitutionsPage
from sgcadmin.pages.messages import MessagesPage
from sgcadmin.pages.performance import PerformancePage
from sgcadmin.pages.promotions import PromotionsPage
from sgcadmin.pages.reports import ReportsPage
from sgcadmin.pages.results import ResultsPage
from sgcadmin.pages.settings import SettingsPage
from sgcadmin.pages.users import UsersPage
from sgcadmin.resources import get_descriptor


LIST_PAGES: Dict[str, Type[ListPage]] = {
    page.descriptor.name: page
    for page in (
        InstitutionsPage, DepartmentsPage, ClassesPage, SectionsPage, GroupsPage,
        UsersPage, AdmissionsPage, ResultsPage, CalendarPage, MessagesPage,
        ReportsPage, PromotionsPage,
    )
}


def page_for(resource: str) -> Type[ListPage]:
    """List page class for a resource name or alias"""
    descriptor = get_descriptor(resource)
    try:
        return LIST_PAGES[descriptor.name]
    except KeyError:
        raise KeyError(f"'{resource}' has no list page") from None


__all__ = [
    "AdmissionsPage",
    "CalendarPage",
    "DashboardPage",
    "ClassesPage",
    "DepartmentsPage",
    "GroupsPage",
    "InstitutionsPage",
    "LIST_PAGES",
    "ListPage",
    "MessagesPage",
    "PerformancePage",
    "PromotionsPage",
    "ReportsPage",
    "ResultsPage",
    "SectionsPage",
    "SettingsPage",
    "UsersPage",
    "page_for",
]
