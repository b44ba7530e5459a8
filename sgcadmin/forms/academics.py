"""
Department, class, section and group forms.

Each belongs to an institution. The institution comes from the form when
one was picked, otherwise from the session (selected institution, then the
user's own), and submitting without any is rejected locally.
"""

import re
from datetime import date
from typing import Any, Dict, List, Optional

from sgcadmin.api_client import ApiClient
from sgcadmin.cascade import CascadingSelector, OptionSource
from sgcadmin.exceptions import LocalValidationError
from sgcadmin.forms.base import FieldSpec, FormBinding, institution_options_loader, scoped_loader
from sgcadmin.forms.results import default_academic_year
from sgcadmin.ids import resolve_id
from sgcadmin.resources import CLASSES, DEPARTMENTS, GROUPS, SECTIONS
from sgcadmin.session import SessionContext


INSTITUTION_MISSING = "Institution not found. Please select an institution or contact administrator."
GROUP_CODE_LENGTH = 12


def generate_code(name: str, length: int = GROUP_CODE_LENGTH) -> str:
    """'Science Club 2' -> 'SCIENCE-CLUB'"""
    if not name:
        return ""
    code = re.sub(r"[^A-Z0-9]", "-", name.strip().upper())
    return re.sub(r"-+", "-", code)[:length]


class InstitutionScopedForm(FormBinding):
    """Form whose record belongs to one institution"""

    chain = ("institution", "department")
    extra_clears: Dict[str, tuple] = {}
    has_academic_year = True

    def __init__(self, api: ApiClient, session: Optional[SessionContext] = None,
                 record_id: Optional[str] = None, **kwargs):
        super().__init__(session=session, record_id=record_id, **kwargs)
        self.api = api
        if self.has_academic_year:
            self.values["academicYear"] = default_academic_year()
        self.selector = CascadingSelector(self.option_sources(), chain=self.chain,
                                          extra_clears=self.extra_clears)
        if session is not None:
            own = session.current_institution_id()
            if own and not session.is_super_admin():
                self.selector.lock("institution", own)
            elif own:
                self.selector.values["institution"] = own
        levels = list(self.chain) + [name for names in self.extra_clears.values() for name in names]
        self.bind_cascade(self.selector, {level: level for level in levels})

    def option_sources(self) -> List[OptionSource]:
        sources = [
            OptionSource("departments", ("institution",),
                         scoped_loader(self.api, "departments", [("institution", "institution")]),
                         "departments"),
        ]
        if self.session is None or self.session.is_super_admin():
            sources.insert(0, OptionSource("institutions", (), institution_options_loader(self.api),
                                           "institutions"))
        return sources

    def options(self, name: str) -> List[Any]:
        return self.selector.options.get(name, [])

    def resolve_institution(self) -> str:
        institution = resolve_id(self.get("institution"))
        if not institution and self.session is not None:
            institution = self.session.current_institution_id() or ""
        return institution

    def check(self) -> None:
        if not self.resolve_institution():
            raise LocalValidationError(INSTITUTION_MISSING, field="institution")

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body["institution"] = self.resolve_institution()
        if self.has_academic_year and not body.get("academicYear"):
            body["academicYear"] = default_academic_year()
        return body


class DepartmentForm(InstitutionScopedForm):
    descriptor = DEPARTMENTS
    chain = ("institution",)
    has_academic_year = False
    fields = (
        FieldSpec("name", "Department Name", required=True),
        FieldSpec("code", "Department Code", required=True),
        FieldSpec("institution", "Institution", kind="ref", omit_blank=True),
        FieldSpec("description", "Description", omit_blank=True),
        FieldSpec("head.name", "Head Name", omit_blank=True),
        FieldSpec("head.email", "Head Email", omit_blank=True),
        FieldSpec("head.phone", "Head Phone", omit_blank=True),
        FieldSpec("building", "Building", omit_blank=True),
        FieldSpec("floor", "Floor", omit_blank=True),
        FieldSpec("roomNumber", "Room Number", omit_blank=True),
        FieldSpec("phone", "Department Phone", omit_blank=True),
        FieldSpec("email", "Department Email", omit_blank=True),
    )

    def option_sources(self) -> List[OptionSource]:
        if self.session is None or self.session.is_super_admin():
            return [OptionSource("institutions", (), institution_options_loader(self.api), "institutions")]
        return []


class ClassForm(InstitutionScopedForm):
    descriptor = CLASSES
    fields = (
        FieldSpec("name", "Name", required=True),
        FieldSpec("code", "Code"),
        FieldSpec("institution", "Institution", kind="ref", omit_blank=True),
        FieldSpec("department", "Department", kind="ref", omit_blank=True),
        FieldSpec("group", "Group", kind="ref", omit_blank=True),
        FieldSpec("academicYear", "Academic Year"),
    )

    def __init__(self, api: ApiClient, session: Optional[SessionContext] = None,
                 record_id: Optional[str] = None, department: Optional[str] = None, **kwargs):
        super().__init__(api, session=session, record_id=record_id, **kwargs)
        if department:
            self.set("department", department)


class SectionForm(InstitutionScopedForm):
    descriptor = SECTIONS
    chain = ("institution", "class")
    extra_clears = {"institution": ("department",)}
    fields = (
        FieldSpec("name", "Name", required=True),
        FieldSpec("code", "Code"),
        FieldSpec("class", "Class", kind="ref", required=True),
        FieldSpec("institution", "Institution", kind="ref", omit_blank=True),
        FieldSpec("department", "Department", kind="ref", omit_blank=True),
        FieldSpec("academicYear", "Academic Year"),
        FieldSpec("strength", "Capacity", kind="number", default=0),
        FieldSpec("startDate", "Start Date", kind="date"),
        FieldSpec("endDate", "End Date", kind="date"),
        FieldSpec("isActive", "Active", kind="bool", default=True),
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        today = date.today().isoformat()
        self.values["startDate"] = today
        self.values["endDate"] = today

    def option_sources(self) -> List[OptionSource]:
        sources = [
            OptionSource("classes", ("institution",),
                         scoped_loader(self.api, "classes", [("institution", "institution")]), "classes"),
        ]
        if self.session is None or self.session.is_super_admin():
            sources.insert(0, OptionSource("institutions", (), institution_options_loader(self.api),
                                           "institutions"))
        return sources

    async def choose(self, name: str, value: Any) -> List[str]:
        cleared = await super().choose(name, value)
        if name == "class":
            self._adopt_class(resolve_id(value))
        return cleared

    def _adopt_class(self, class_id: str) -> None:
        """Picking a class also fixes the section's department"""
        for option in self.options("classes"):
            if isinstance(option, dict) and resolve_id(option) == class_id:
                department = resolve_id(option.get("department"))
                if department:
                    self.values["department"] = department
                return

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body = super().normalize(body)
        body["capacity"] = body.pop("strength", 0) or 0
        return body


class GroupForm(InstitutionScopedForm):
    descriptor = GROUPS
    chain = ("institution", "class", "section")
    extra_clears = {"institution": ("department",)}
    fields = (
        FieldSpec("name", "Name", required=True),
        FieldSpec("code", "Code"),
        FieldSpec("type", "Type", default="Study"),
        FieldSpec("institution", "Institution", kind="ref", omit_blank=True),
        FieldSpec("department", "Department", kind="ref", omit_blank=True),
        FieldSpec("class", "Class", kind="ref", omit_blank=True),
        FieldSpec("section", "Section", kind="ref", omit_blank=True),
        FieldSpec("academicYear", "Academic Year"),
        FieldSpec("capacity", "Capacity", kind="number", default=10),
        FieldSpec("description", "Description", omit_blank=True),
    )

    def option_sources(self) -> List[OptionSource]:
        sources = super().option_sources()
        sources.extend([
            OptionSource("classes", ("institution",),
                         scoped_loader(self.api, "classes", [("institution", "institution")]), "classes"),
            OptionSource("sections", ("class",),
                         scoped_loader(self.api, "sections", [("class", "class")]), "sections"),
        ])
        return sources

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body = super().normalize(body)
        if not body.get("code"):
            body["code"] = generate_code(body.get("name", ""))
        if not body.get("type"):
            body["type"] = "Study"
        if not body.get("capacity"):
            body["capacity"] = 10
        if not body.get("department"):
            departments = self.options("departments")
            if departments:
                body["department"] = resolve_id(departments[0])
        return body
