"""Result create/edit form"""

from datetime import date
from typing import Any, Dict, List, Optional

from sgcadmin.api_client import ApiClient
from sgcadmin.cascade import CascadingSelector, CascadeState, OptionSource
from sgcadmin.exceptions import LocalValidationError
from sgcadmin.forms.base import FieldSpec, FormBinding, institution_options_loader, scoped_loader
from sgcadmin.ids import resolve_id
from sgcadmin.models import EXAM_TYPES, RESULT_STATUSES
from sgcadmin.resources import RESULTS
from sgcadmin.session import SessionContext


MARKS_MESSAGE = "Please enter both obtained and total marks"


def default_academic_year(today: Optional[date] = None) -> str:
    year = (today or date.today()).year
    return f"{year}-{year + 1}"


def students_from_admissions(admissions: List[Dict[str, Any]], class_id: str) -> List[Dict[str, Any]]:
    """Distinct students enrolled in ``class_id``"""
    students: List[Dict[str, Any]] = []
    seen = set()
    for admission in admissions:
        if resolve_id(admission.get("class")) != class_id or not admission.get("studentId"):
            continue
        student = admission["studentId"]
        student_id = resolve_id(student)
        if student_id in seen:
            continue
        seen.add(student_id)
        details = student if isinstance(student, dict) else {}
        user = details.get("user") if isinstance(details.get("user"), dict) else {}
        personal = admission.get("personalInfo") or {}
        students.append({
            "_id": student_id,
            "name": user.get("name") or personal.get("name") or "Unknown",
            "enrollmentNumber": details.get("enrollmentNumber") or admission.get("applicationNumber") or "N/A",
        })
    return students


class ResultForm(FormBinding):
    descriptor = RESULTS
    fields = (
        FieldSpec("institution", "Institution", kind="ref", omit_blank=True),
        FieldSpec("student", "Student", kind="ref", required=True, message="Please select a student"),
        FieldSpec("examName", "Exam Name", required=True, message="Please enter exam name"),
        FieldSpec("subject", "Subject", required=True, message="Please enter subject"),
        FieldSpec("marks.obtained", "Marks Obtained", kind="number", required=True, message=MARKS_MESSAGE),
        FieldSpec("marks.total", "Total Marks", kind="number", required=True, message=MARKS_MESSAGE),
        FieldSpec("academicYear", "Academic Year"),
        FieldSpec("class", "Class", kind="ref", required=True, message="Please select a class"),
        FieldSpec("section", "Section", kind="ref", omit_blank=True),
        FieldSpec("group", "Group", kind="ref", omit_blank=True),
        FieldSpec("examType", "Exam Type", kind="choice", choices=EXAM_TYPES, default="midterm"),
        FieldSpec("examDate", "Exam Date", kind="date"),
        FieldSpec("remarks", "Remarks", omit_blank=True),
        FieldSpec("teacherRemarks", "Teacher Remarks", omit_blank=True),
        FieldSpec("status", "Status", kind="choice", choices=RESULT_STATUSES, default="draft"),
    )

    def __init__(self, api: ApiClient, session: Optional[SessionContext] = None,
                 record_id: Optional[str] = None, today: Optional[date] = None, **kwargs):
        super().__init__(session=session, record_id=record_id, **kwargs)
        self.api = api
        today = today or date.today()
        self.values["academicYear"] = default_academic_year(today)
        self.values["examDate"] = today.isoformat()

        sources = [
            OptionSource("classes", ("institution",),
                         scoped_loader(api, "classes", [("institution", "institution")]), "classes"),
            OptionSource("sections", ("class",),
                         scoped_loader(api, "sections", [("class", "class")]), "sections"),
            OptionSource("students", ("institution", "class"), self._load_students, "students"),
        ]
        if session is None or session.is_super_admin():
            sources.insert(0, OptionSource("institutions", (), institution_options_loader(api), "institutions"))
        self.selector = CascadingSelector(sources, extra_clears={"class": ("student",)})
        if session is not None and not session.is_super_admin():
            own = session.current_institution_id()
            if own:
                self.selector.lock("institution", own)
        self.bind_cascade(self.selector, {
            "institution": "institution",
            "class": "class",
            "section": "section",
            "student": "student",
        })

    async def _load_students(self, upstream: Dict[str, str]) -> List[Dict[str, Any]]:
        response = await self.api.get(
            "admissions", params={"status": "enrolled", "institution": upstream["institution"]}
        )
        return students_from_admissions(response.items, upstream["class"])

    @property
    def state(self) -> CascadeState:
        return self.selector.state

    def options(self, name: str) -> List[Any]:
        return self.selector.options.get(name, [])

    def check(self) -> None:
        try:
            obtained = float(self.get("marks.obtained"))
            total = float(self.get("marks.total"))
        except (TypeError, ValueError):
            raise LocalValidationError("Marks must be numbers", field="marks.obtained") from None
        if obtained > total:
            raise LocalValidationError(
                "Obtained marks cannot be greater than total marks", field="marks.obtained"
            )

    @property
    def success_message(self) -> str:
        return "Result updated successfully" if self.is_edit else "Result created successfully"

    @property
    def failure_message(self) -> str:
        return f"Failed to {'update' if self.is_edit else 'create'} result"
