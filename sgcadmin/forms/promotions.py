"""
Student promotion: promote, transfer or pass out enrolled students.

The FROM side picks institution → class → section and loads the enrolled
students of that section; the TO side picks where they go. One POST to
student-promotions carries every selected admission.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sgcadmin.api_client import ApiClient
from sgcadmin.cascade import CascadeState, CascadingSelector, OptionSource
from sgcadmin.exceptions import LocalValidationError, SGCAdminError, banner_text
from sgcadmin.forms.base import FieldSpec, FormBinding, FormOutcome, institution_options_loader, scoped_loader
from sgcadmin.ids import resolve_id
from sgcadmin.logging_config import get_logger
from sgcadmin.models import PROMOTION_TYPES
from sgcadmin.mutations import MutationExecutor
from sgcadmin.resources import PROMOTIONS
from sgcadmin.session import SessionContext


logger = get_logger(__name__)

ACTION_LABELS = {"promote": "Promote", "transfer": "Transfer", "passout": "Pass Out"}
PAST_TENSE = {"promote": "promoted", "transfer": "transferred", "passout": "passed out"}
SIDE_LEVELS = ("institution", "class", "section", "group")


def _first_capital(text: str) -> str:
    text = (text or "").strip()
    return text[:1].upper() + text[1:].lower() if text else ""


@dataclass
class PromotionCandidate:
    """One enrolled student, keyed by admission id"""
    id: str
    student_id: str
    roll_number: str
    name: str
    father_name: str
    status: str
    category: str
    gender: str
    admission: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_admission(cls, admission: Dict[str, Any], index: int) -> "PromotionCandidate":
        student = admission.get("studentId") if isinstance(admission.get("studentId"), dict) else {}
        personal = admission.get("personalInfo") or {}
        guardian = admission.get("guardianInfo") or {}
        name = " ".join(
            _first_capital(personal.get(key, "")) for key in ("firstName", "middleName", "lastName")
        )
        return cls(
            id=resolve_id(admission),
            student_id=student.get("enrollmentNumber") or admission.get("applicationNumber") or f"STU{index + 1}",
            roll_number=student.get("rollNumber") or admission.get("rollNumber") or "",
            name=" ".join(name.split()),
            father_name=_first_capital(guardian.get("fatherName", "")),
            status=admission.get("status") or "enrolled",
            category=personal.get("category") or "Default",
            gender=personal.get("gender") or "Male",
            admission=admission,
        )

    def matches(self, term: str) -> bool:
        needle = term.strip().lower()
        if not needle:
            return True
        return any(
            needle in (value or "").lower()
            for value in (self.student_id, self.roll_number, self.name, self.father_name,
                          self.status, self.category, self.gender)
        )


def _side_fields(side: str) -> tuple:
    return tuple(
        FieldSpec(f"{side}.{level}", f"{side.upper()} {level.capitalize()}", kind="ref", omit_blank=True)
        for level in SIDE_LEVELS
    )


class PromotionForm(FormBinding):
    descriptor = PROMOTIONS
    redirects = False
    fields = (
        FieldSpec("promotionType", "Promotion Type", kind="choice", required=True,
                  choices=PROMOTION_TYPES, default="promote"),
        *_side_fields("from"),
        *_side_fields("to"),
        FieldSpec("to.academicYear", "TO Academic Year", omit_blank=True),
        FieldSpec("remarks", "Remarks", omit_blank=True),
    )

    def __init__(self, api: ApiClient, session: Optional[SessionContext] = None, **kwargs):
        super().__init__(session=session, **kwargs)
        self.api = api
        self.candidates: List[PromotionCandidate] = []
        self.selected: List[str] = []
        self.search_term = ""

        self.from_selector = self.bind_cascade(self._selector(), self._mapping("from"))
        self.to_selector = self.bind_cascade(self._selector(), self._mapping("to"))
        if session is not None and not session.is_super_admin():
            own = session.current_institution_id()
            if own:
                for selector, side in ((self.from_selector, "from"), (self.to_selector, "to")):
                    selector.lock("institution", own)
                    self.values[f"{side}.institution"] = own

    def _selector(self) -> CascadingSelector:
        api = self.api
        return CascadingSelector(
            [
                OptionSource("institutions", (), institution_options_loader(api), "institutions"),
                OptionSource("classes", ("institution",),
                             scoped_loader(api, "classes", [("institution", "institution")]), "classes"),
                OptionSource("sections", ("institution", "class"),
                             scoped_loader(api, "sections", [("institution", "institution"), ("class", "class")]),
                             "sections"),
                OptionSource("groups", ("institution",),
                             scoped_loader(api, "groups", [("institution", "institution")]), "groups"),
            ],
            extra_clears={"institution": ("group",)},
        )

    @staticmethod
    def _mapping(side: str) -> Dict[str, str]:
        return {f"{side}.{level}": level for level in SIDE_LEVELS}

    # ==================== Selections ====================

    @property
    def from_state(self) -> CascadeState:
        return self.from_selector.state

    def set(self, name: str, value: Any) -> List[str]:
        before = self.get(name)
        cleared = super().set(name, value)
        if name.startswith("from.") and resolve_id(value) != resolve_id(before):
            # Student list belonged to the previous FROM placement
            self.candidates = []
            self.selected = []
        return cleared

    async def load_options(self) -> None:
        """Initial option load; a single available institution is preselected"""
        await self.sync()
        institutions = self.from_selector.options.get("institutions", [])
        if len(institutions) == 1 and not self.get("from.institution"):
            await self.choose("from.institution", institutions[0])
        elif not institutions:
            self.from_selector.errors["institutions"] = (
                "No institution found for your account. Please contact administrator."
            )

    # ==================== Students ====================

    async def fetch_students(self) -> List[PromotionCandidate]:
        """
        Load enrolled students of the FROM class and section.

        Raises:
            LocalValidationError: FROM institution, class or section missing
            SGCAdminError: request failed; message is the banner text
        """
        institution = self.get("from.institution")
        school_class = self.get("from.class")
        section = self.get("from.section")
        if not (institution and school_class and section):
            raise LocalValidationError("Please select School, Class, and Section in FROM section")

        try:
            response = await self.api.get("admissions", params={"institution": institution, "status": "enrolled"})
        except SGCAdminError as e:
            raise type(e)(banner_text(e, "Failed to fetch students"), status=e.status,
                          details=e.details) from e

        matching = []
        for admission in response.items:
            if admission.get("class") and resolve_id(admission["class"]) != school_class:
                continue
            if admission.get("section") and resolve_id(admission["section"]) != section:
                continue
            matching.append(admission)
        self.candidates = [PromotionCandidate.from_admission(a, i) for i, a in enumerate(matching)]
        self.selected = []
        logger.info(f"Loaded {len(self.candidates)} enrolled students for promotion")
        return self.candidates

    @property
    def visible_students(self) -> List[PromotionCandidate]:
        return [candidate for candidate in self.candidates if candidate.matches(self.search_term)]

    def toggle_student(self, admission_id: str) -> bool:
        """Returns True when the student is now selected"""
        if admission_id in self.selected:
            self.selected.remove(admission_id)
            return False
        if not any(candidate.id == admission_id for candidate in self.candidates):
            raise KeyError(f"Student '{admission_id}' is not in the loaded list")
        self.selected.append(admission_id)
        return True

    def select_all(self) -> None:
        self.selected = [candidate.id for candidate in self.candidates]

    def clear_selection(self) -> None:
        self.selected = []

    # ==================== Submit ====================

    @property
    def promotion_type(self) -> str:
        return self.get("promotionType") or "promote"

    @property
    def action_label(self) -> str:
        return ACTION_LABELS.get(self.promotion_type, "Promote")

    def check(self) -> None:
        if not self.selected:
            raise LocalValidationError("Please select at least one student", field="studentIds")
        if self.promotion_type in ("promote", "transfer"):
            if not all(self.get(f"to.{level}") for level in ("institution", "class", "section")):
                raise LocalValidationError("Please fill all required fields in TO section", field="to")

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body["studentIds"] = list(self.selected)
        body.setdefault("from", {})
        body.setdefault("to", {})
        body.setdefault("remarks", "")
        return body

    async def submit(self, executor: MutationExecutor) -> FormOutcome:
        try:
            self.validate()
        except LocalValidationError as e:
            logger.info(f"Promotion rejected locally: {e.message}")
            return FormOutcome(ok=False, message=e.message, error=e.kind)

        body = self.payload()
        self.submitting = True
        try:
            result = await executor.create(self.descriptor, body)
        finally:
            self.submitting = False

        if not result.ok:
            return FormOutcome(ok=False, message=result.banner(f"Failed to {self.promotion_type} students"),
                               error=result.error)

        summary = result.data if isinstance(result.data, dict) else {}
        total = summary.get("total", len(self.selected))
        processed = summary.get("processed", total)
        message = f"{processed} of {total} student(s) {PAST_TENSE[self.promotion_type]}"
        failures = summary.get("errors") or []
        if failures:
            message += f"; {len(failures)} failed"
        self.clear_selection()
        return FormOutcome(ok=True, message=message, data=summary)
