"""Users list"""

from typing import Any, List

from sgcadmin.exceptions import SGCAdminError
from sgcadmin.forms.users import UserForm
from sgcadmin.ids import resolve_id
from sgcadmin.logging_config import get_logger
from sgcadmin.pages.base import ListPage
from sgcadmin.resources import USERS


logger = get_logger(__name__)


class UsersPage(ListPage):
    descriptor = USERS
    form_class = UserForm

    async def filter_options(self) -> dict:
        """
        Institutions and departments for the filter bar.

        Departments follow the institution filter; option failures only log.
        """
        options: dict = {"institutions": [], "departments": []}
        try:
            if self.institution_selector_enabled:
                options["institutions"] = (await self.api.get("institutions")).items
            departments: List[Any] = (await self.api.get("departments")).items
        except SGCAdminError as e:
            logger.warning(f"Loading user filter options failed: {e.message}")
            return options
        institution = self.controller.query.get("institution")
        if institution:
            departments = [d for d in departments
                           if isinstance(d, dict) and resolve_id(d.get("institution")) == institution]
        options["departments"] = departments
        return options

    async def apply_filters(self, **filters: Any) -> None:
        # A department only makes sense inside the chosen institution
        if "institution" in filters and "department" not in filters:
            filters["department"] = None
        await super().apply_filters(**filters)
