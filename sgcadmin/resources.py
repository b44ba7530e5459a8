"""
Resource descriptors.

One descriptor per backend collection: where it lives, which query parameters
the backend actually honours, which filters must be applied client side, and
how rows are shown. Pages build their controllers from these instead of
re-implementing fetch/filter/paginate each time.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Type

from pydantic import BaseModel

from sgcadmin import models


LocalPredicate = Callable[[Any, Any], bool]
Column = Tuple[str, str]


def text_search(*attributes: str) -> LocalPredicate:
    """Case-insensitive substring match over the given record attributes"""

    def predicate(record: Any, term: Any) -> bool:
        needle = str(term).strip().lower()
        if not needle:
            return True
        for attribute in attributes:
            value = getattr(record, attribute, None)
            if isinstance(value, str) and needle in value.lower():
                return True
        return False

    return predicate


def covers_date(record: models.CalendarEvent, day: Any) -> bool:
    return record.covers(str(day))


@dataclass(frozen=True)
class ResourceDescriptor:
    """Static description of one backend collection"""
    name: str
    endpoint: str
    model: Type[BaseModel]
    label: str
    singular: str
    server_filters: Tuple[str, ...] = ()
    local_filters: Dict[str, LocalPredicate] = field(default_factory=dict)
    server_pagination: bool = False
    institution_scoped: bool = False
    super_admin_only: bool = False
    supports_toggle: bool = False
    supports_delete: bool = False
    actions: Tuple[str, ...] = ()
    columns: Tuple[Column, ...] = ()

    def __post_init__(self):
        if self.server_pagination and self.local_filters:
            # Local filters over one server page would silently under-report matches
            raise ValueError(
                f"{self.name}: client-side filters require fetching the full list"
            )
        overlap = set(self.server_filters) & set(self.local_filters)
        if overlap:
            raise ValueError(f"{self.name}: filters both local and server side: {sorted(overlap)}")

    @property
    def list_route(self) -> str:
        return f"/{self.name}"

    def item_path(self, record_id: str) -> str:
        return f"{self.endpoint}/{record_id}"

    def action_path(self, record_id: str, action: str) -> str:
        return f"{self.endpoint}/{record_id}/{action}"

    def accepts(self, filter_name: str) -> bool:
        return filter_name in self.server_filters or filter_name in self.local_filters


INSTITUTIONS = ResourceDescriptor(
    name="institutions",
    endpoint="institutions",
    model=models.Institution,
    label="institutions",
    singular="institution",
    server_filters=("type",),
    local_filters={"search": text_search("name", "code")},
    super_admin_only=True,
    supports_toggle=True,
    columns=(("Name", "name"), ("Code", "code"), ("Type", "type"), ("Status", "is_active")),
)

DEPARTMENTS = ResourceDescriptor(
    name="departments",
    endpoint="departments",
    model=models.Department,
    label="departments",
    singular="department",
    server_filters=("institution",),
    local_filters={"search": text_search("name", "code", "head_name")},
    institution_scoped=True,
    supports_toggle=True,
    columns=(("Name", "name"), ("Code", "code"), ("Head", "head_name"), ("Status", "is_active")),
)

CLASSES = ResourceDescriptor(
    name="classes",
    endpoint="classes",
    model=models.SchoolClass,
    label="classes",
    singular="class",
    server_filters=("institution", "department", "academicYear"),
    local_filters={"search": text_search("name", "code")},
    institution_scoped=True,
    supports_toggle=True,
    columns=(("Name", "name"), ("Code", "code"), ("Academic Year", "academic_year"), ("Status", "is_active")),
)

SECTIONS = ResourceDescriptor(
    name="sections",
    endpoint="sections",
    model=models.Section,
    label="sections",
    singular="section",
    server_filters=("institution", "class"),
    local_filters={"search": text_search("name", "code", "class_name")},
    institution_scoped=True,
    columns=(("Name", "name"), ("Code", "code"), ("Class", "class_name"), ("Capacity", "capacity")),
)

GROUPS = ResourceDescriptor(
    name="groups",
    endpoint="groups",
    model=models.Group,
    label="groups",
    singular="group",
    server_filters=("institution", "department", "class"),
    local_filters={"search": text_search("name", "code")},
    institution_scoped=True,
    columns=(("Name", "name"), ("Code", "code"), ("Type", "type"), ("Capacity", "capacity")),
)

USERS = ResourceDescriptor(
    name="users",
    endpoint="users",
    model=models.User,
    label="users",
    singular="user",
    server_filters=("search", "role", "institution", "department", "isActive"),
    institution_scoped=True,
    supports_toggle=True,
    columns=(("Name", "name"), ("Email", "email"), ("Role", "role"),
             ("Institution", "institution_name"), ("Status", "is_active")),
)

ADMISSIONS = ResourceDescriptor(
    name="admissions",
    endpoint="admissions",
    model=models.Admission,
    label="admissions",
    singular="admission",
    server_filters=("institution", "status", "class", "academicYear"),
    local_filters={"search": text_search("student_name", "application_number", "enrollment_number")},
    institution_scoped=True,
    columns=(("Application", "application_number"), ("Student", "student_name"),
             ("Status", "status"), ("Academic Year", "academic_year")),
)

RESULTS = ResourceDescriptor(
    name="results",
    endpoint="results",
    model=models.Result,
    label="results",
    singular="result",
    server_filters=("institution", "class", "section", "examType", "academicYear", "status"),
    local_filters={"search": text_search("exam_name", "subject", "student_name", "enrollment_number")},
    institution_scoped=True,
    supports_delete=True,
    actions=("publish",),
    columns=(("Student", "student_name"), ("Exam", "exam_name"), ("Subject", "subject"),
             ("Grade", "grade"), ("Percentage", "percentage"), ("Status", "status")),
)

CALENDAR = ResourceDescriptor(
    name="calendar",
    endpoint="calendar",
    model=models.CalendarEvent,
    label="events",
    singular="event",
    local_filters={"date": covers_date, "search": text_search("title", "location", "description")},
    supports_delete=True,
    columns=(("Title", "title"), ("Type", "type"), ("Start", "start_date"),
             ("End", "end_date"), ("Location", "location")),
)

MESSAGES = ResourceDescriptor(
    name="messages",
    endpoint="messages",
    model=models.Message,
    label="messages",
    singular="message",
    server_filters=("status", "messageType"),
    server_pagination=True,
    supports_delete=True,
    actions=("send",),
    columns=(("Subject", "subject"), ("Type", "type"), ("Status", "status"),
             ("Scheduled", "scheduled_for")),
)

REPORTS = ResourceDescriptor(
    name="reports",
    endpoint="reports",
    model=models.Report,
    label="reports",
    singular="report",
    server_filters=("type", "isActive"),
    supports_delete=True,
    actions=("generate",),
    columns=(("Name", "name"), ("Type", "type"), ("Format", "format"), ("Status", "is_active")),
)

PROMOTIONS = ResourceDescriptor(
    name="student-promotions",
    endpoint="student-promotions",
    model=models.PromotionRecord,
    label="promotion history",
    singular="promotion",
    server_filters=("institution", "operationType", "startDate", "endDate"),
    institution_scoped=True,
    columns=(("Operation", "operation_type"), ("Student", "student"),
             ("Date", "operation_date"), ("Remarks", "remarks")),
)

SETTINGS = ResourceDescriptor(
    name="settings",
    endpoint="settings",
    model=models.Setting,
    label="settings",
    singular="setting",
    server_filters=("category",),
    columns=(("Key", "key"), ("Value", "value"), ("Category", "category"), ("Editable", "is_editable")),
)


REGISTRY: Dict[str, ResourceDescriptor] = {
    descriptor.name: descriptor
    for descriptor in (
        INSTITUTIONS, DEPARTMENTS, CLASSES, SECTIONS, GROUPS, USERS, ADMISSIONS,
        RESULTS, CALENDAR, MESSAGES, REPORTS, PROMOTIONS, SETTINGS,
    )
}


def get_descriptor(name: str) -> ResourceDescriptor:
    """Look up a descriptor by resource name (a few singular aliases accepted)"""
    aliases = {"promotions": "student-promotions", "events": "calendar"}
    key = aliases.get(name, name)
    try:
        return REGISTRY[key]
    except KeyError:
        raise KeyError(f"Unknown resource '{name}'. Known: {', '.join(sorted(REGISTRY))}") from None


def find_by_id(items: Any, record_id: str) -> Optional[Any]:
    for item in items:
        if getattr(item, "id", None) == record_id:
            return item
    return None
