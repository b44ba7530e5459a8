"""
Entity records exchanged with the administration API.

Records are parsed straight from API responses. Relational fields pass through
``resolve_id`` during validation, so a record always holds plain ids; names of
populated references that pages display or search on are captured first into
separate ``*_name`` attributes.
"""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from sgcadmin.ids import resolve_id


RefId = Annotated[str, BeforeValidator(resolve_id)]

ROLES = ("super_admin", "admin", "teacher", "student")
INSTITUTION_TYPES = ("school", "college")
EXAM_TYPES = ("quiz", "assignment", "midterm", "final", "practical", "project", "oral", "other")
RESULT_STATUSES = ("draft", "published", "archived")
ADMISSION_STATUSES = ("enrolled", "transferred", "graduated", "active", "pending", "approved", "rejected")
MESSAGE_TYPES = ("email", "sms", "notification", "announcement")
MESSAGE_STATUSES = ("draft", "scheduled", "sent", "failed")
AUDIENCE_TYPES = ("all", "role", "institution", "department", "custom")
EVENT_TYPES = ("holiday", "exam", "event", "meeting", "deadline", "other")
REPORT_TYPES = ("institution", "user", "financial", "activity", "custom")
REPORT_FORMATS = ("pdf", "excel", "csv", "json")
FREQUENCIES = ("daily", "weekly", "monthly", "yearly")
PROMOTION_TYPES = ("promote", "transfer", "passout")
SETTING_TYPES = ("boolean", "number", "string", "object", "array")


def _capture(data: Any, target: str, source: str, *path: str) -> None:
    """Copy a nested display value (e.g. student.user.name) into ``target``"""
    if not isinstance(data, dict) or data.get(target):
        return
    value: Any = data.get(source)
    for key in path:
        if not isinstance(value, dict):
            return
        value = value.get(key)
    if isinstance(value, str) and value:
        data[target] = value


class Record(BaseModel):
    """Base for all API records"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: RefId = Field("", validation_alias=AliasChoices("_id", "id"))


# ============================================
# Organisation
# ============================================

class Institution(Record):
    name: str = ""
    code: str = ""
    type: str = "school"
    address: Optional[Dict[str, Any]] = None
    contact: Optional[Dict[str, Any]] = None
    is_active: bool = True

    @field_validator("code", mode="before")
    @classmethod
    def _upper_code(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class Department(Record):
    name: str = ""
    code: str = ""
    institution: RefId = ""
    institution_name: Optional[str] = None
    description: Optional[str] = None
    head: Optional[Dict[str, Any]] = None
    building: Optional[str] = None
    floor: Optional[str] = None
    room_number: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _names(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            _capture(data, "institutionName", "institution", "name")
        return data

    @property
    def head_name(self) -> str:
        return str((self.head or {}).get("name") or "")


class SchoolClass(Record):
    name: str = ""
    code: str = ""
    institution: RefId = ""
    institution_name: Optional[str] = None
    department: RefId = ""
    group: RefId = ""
    academic_year: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _names(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            _capture(data, "institutionName", "institution", "name")
        return data


class Section(Record):
    name: str = ""
    code: str = ""
    institution: RefId = ""
    school_class: RefId = Field("", validation_alias=AliasChoices("class", "schoolClass", "school_class"),
                                serialization_alias="class")
    class_name: Optional[str] = None
    department: RefId = ""
    capacity: Optional[int] = None
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _names(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            _capture(data, "className", "class", "name")
        return data


class Group(Record):
    name: str = ""
    code: str = ""
    institution: RefId = ""
    department: RefId = ""
    school_class: RefId = Field("", validation_alias=AliasChoices("class", "schoolClass", "school_class"),
                                serialization_alias="class")
    section: RefId = ""
    type: Optional[str] = None
    capacity: Optional[int] = None
    description: Optional[str] = None


# ============================================
# People
# ============================================

class User(Record):
    name: str = ""
    email: str = ""
    role: str = "student"
    institution: RefId = ""
    institution_name: Optional[str] = None
    department: RefId = ""
    phone: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _names(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            _capture(data, "institutionName", "institution", "name")
        return data

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"


class Admission(Record):
    application_number: Optional[str] = None
    institution: RefId = ""
    school_class: RefId = Field("", validation_alias=AliasChoices("class", "schoolClass", "school_class"),
                                serialization_alias="class")
    section: RefId = ""
    group: RefId = ""
    student: RefId = Field("", validation_alias=AliasChoices("studentId", "student"))
    student_name: str = ""
    enrollment_number: Optional[str] = None
    roll_number: Optional[str] = None
    father_name: Optional[str] = None
    category: Optional[str] = None
    gender: Optional[str] = None
    status: str = "enrolled"
    academic_year: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        personal = data.get("personalInfo") or {}
        if not data.get("studentName"):
            parts = [
                (personal.get(key) or "").strip()
                for key in ("firstName", "middleName", "lastName")
            ]
            full_name = " ".join(part.capitalize() for part in parts if part)
            if full_name:
                data["studentName"] = full_name
            else:
                _capture(data, "studentName", "studentId", "user", "name")
        _capture(data, "enrollmentNumber", "studentId", "enrollmentNumber")
        _capture(data, "rollNumber", "studentId", "rollNumber")
        _capture(data, "fatherName", "guardianInfo", "fatherName")
        _capture(data, "category", "personalInfo", "category")
        _capture(data, "gender", "personalInfo", "gender")
        return data


# ============================================
# Academics
# ============================================

class Marks(BaseModel):
    obtained: float = 0
    total: float = 0


class Result(Record):
    student: RefId = ""
    student_name: Optional[str] = None
    enrollment_number: Optional[str] = None
    institution: RefId = ""
    school_class: RefId = Field("", validation_alias=AliasChoices("class", "schoolClass", "school_class"),
                                serialization_alias="class")
    class_name: Optional[str] = None
    section: RefId = ""
    group: RefId = ""
    academic_year: Optional[str] = None
    exam_type: str = "midterm"
    exam_name: str = ""
    subject: str = ""
    exam_date: Optional[str] = None
    marks: Optional[Marks] = None
    percentage: Optional[float] = None
    grade: Optional[str] = None
    gpa: Optional[float] = None
    status: str = "draft"
    remarks: Optional[str] = None
    teacher_remarks: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _names(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            _capture(data, "studentName", "student", "user", "name")
            _capture(data, "enrollmentNumber", "student", "enrollmentNumber")
            _capture(data, "className", "class", "name")
        return data


# ============================================
# Communication & planning
# ============================================

class TargetAudience(BaseModel):
    type: str = "all"
    criteria: Dict[str, Any] = Field(default_factory=dict)


class Message(Record):
    subject: str = ""
    content: str = Field("", validation_alias=AliasChoices("content", "body"))
    type: str = Field("email", validation_alias=AliasChoices("type", "messageType"))
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    status: str = "draft"
    scheduled_for: Optional[str] = Field(None, validation_alias=AliasChoices("scheduledFor", "scheduledAt"))
    stats: Optional[Dict[str, Any]] = None

    @property
    def is_editable(self) -> bool:
        return self.status == "draft"


class Recurrence(BaseModel):
    frequency: str = "weekly"
    interval: int = 1


class CalendarEvent(Record):
    title: str = ""
    description: Optional[str] = None
    type: str = Field("event", validation_alias=AliasChoices("type", "eventType"))
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = None
    recurrence: Optional[Recurrence] = None

    def covers(self, day: str) -> bool:
        """True when the ISO date ``day`` falls inside the event"""
        start = (self.start_date or "")[:10]
        end = (self.end_date or self.start_date or "")[:10]
        return bool(start) and start <= day[:10] <= end


class Report(Record):
    name: str = ""
    description: Optional[str] = None
    type: str = "institution"
    format: str = "pdf"
    filters: Dict[str, Any] = Field(default_factory=dict)
    schedule: Optional[Dict[str, Any]] = None
    is_active: bool = True


class GeneratedReport(BaseModel):
    """Transient output of reports/:id/generate, never persisted"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    summary: Dict[str, Any] = Field(default_factory=dict)
    data: List[Dict[str, Any]] = Field(default_factory=list)
    generated_at: Optional[str] = None


# ============================================
# Promotion audit log
# ============================================

class PlacementRef(BaseModel):
    """One side (from / to) of a promotion or transfer"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    institution: RefId = ""
    school_class: RefId = Field("", validation_alias=AliasChoices("class", "schoolClass", "school_class"),
                                serialization_alias="class")
    section: RefId = ""
    group: RefId = ""
    academic_year: Optional[str] = None


class PromotionRecord(Record):
    operation_type: str = "promote"
    student: RefId = ""
    origin: PlacementRef = Field(default_factory=PlacementRef,
                                 validation_alias=AliasChoices("from", "origin"),
                                 serialization_alias="from")
    destination: Optional[PlacementRef] = Field(None, validation_alias=AliasChoices("to", "destination"),
                                                serialization_alias="to")
    remarks: Optional[str] = None
    performed_by: RefId = ""
    operation_date: Optional[str] = None


# ============================================
# Settings
# ============================================

class Setting(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    key: str
    value: Any = None
    data_type: str = "string"
    category: str = "general"
    description: Optional[str] = None
    is_editable: bool = True
    is_public: bool = False
