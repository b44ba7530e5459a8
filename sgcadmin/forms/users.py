"""User create/edit form"""

from typing import Any, Dict, List, Optional

from sgcadmin.api_client import ApiClient
from sgcadmin.cascade import CascadingSelector, OptionSource
from sgcadmin.exceptions import LocalValidationError
from sgcadmin.forms.base import FieldSpec, FormBinding, institution_options_loader
from sgcadmin.ids import resolve_id
from sgcadmin.models import ROLES
from sgcadmin.resources import USERS
from sgcadmin.session import SessionContext


MIN_PASSWORD_LENGTH = 6


def _needs_institution(form: FormBinding) -> bool:
    return form.get("role") != "super_admin"


def _needs_password(form: FormBinding) -> bool:
    return not form.is_edit


class UserForm(FormBinding):
    descriptor = USERS
    fields = (
        FieldSpec("name", "Name", required=True),
        FieldSpec("email", "Email", required=True),
        FieldSpec("role", "Role", kind="choice", required=True, choices=ROLES, default="student"),
        FieldSpec("institution", "Institution", kind="ref", omit_blank=True,
                  required=_needs_institution, message="Institution is required for this role"),
        FieldSpec("password", "Password", kind="secret", omit_blank=True, write_only=True,
                  required=_needs_password, message="Password is required"),
        FieldSpec("confirmPassword", "Confirm Password", kind="secret", omit_blank=True, write_only=True),
        FieldSpec("department", "Department", kind="ref", omit_blank=True),
        FieldSpec("phone", "Phone", omit_blank=True),
    )

    def __init__(self, api: ApiClient, session: Optional[SessionContext] = None,
                 record_id: Optional[str] = None, **kwargs):
        super().__init__(session=session, record_id=record_id, **kwargs)
        self.api = api
        sources = [OptionSource("departments", ("institution",), self._load_departments, "departments")]
        if session is None or session.is_super_admin():
            sources.insert(0, OptionSource("institutions", (), institution_options_loader(api), "institutions"))
        self.selector = CascadingSelector(sources, chain=("institution", "department"))
        if session is not None and not session.is_super_admin():
            own = session.current_institution_id()
            if own:
                self.selector.lock("institution", own)
        self.bind_cascade(self.selector, {"institution": "institution", "department": "department"})

    async def _load_departments(self, upstream: Dict[str, str]) -> List[Any]:
        institution_id = upstream["institution"]
        response = await self.api.get("departments", params={"institution": institution_id})
        # The backend may ignore the filter; keep only this institution's departments
        return [
            department for department in response.items
            if resolve_id(department.get("institution") if isinstance(department, dict) else None)
            == institution_id
        ]

    @property
    def institutions(self) -> List[Any]:
        return self.selector.options.get("institutions", [])

    @property
    def departments(self) -> List[Any]:
        return self.selector.options.get("departments", [])

    @property
    def department_enabled(self) -> bool:
        return bool(self.get("institution"))

    @property
    def institution_enabled(self) -> bool:
        return self.selector.is_enabled("institution")

    def check(self) -> None:
        password = self.get("password") or ""
        if not password:
            return
        if len(password) < MIN_PASSWORD_LENGTH:
            raise LocalValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
            )
        if password != (self.get("confirmPassword") or ""):
            raise LocalValidationError("Passwords do not match", field="confirmPassword")

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body.pop("confirmPassword", None)
        if body.get("role") == "super_admin":
            body.pop("institution", None)
        return body
