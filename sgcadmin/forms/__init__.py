"""Entity forms"""

from sgcadmin.forms.academics import ClassForm, DepartmentForm, GroupForm, SectionForm
from sgcadmin.forms.base import FieldSpec, FormBinding, FormOutcome
from sgcadmin.forms.calendar import CalendarEventForm
from sgcadmin.forms.institutions import InstitutionForm
from sgcadmin.forms.messages import MessageForm
from sgcadmin.forms.promotions import PromotionForm
from sgcadmin.forms.reports import ReportForm
from sgcadmin.forms.results import ResultForm
from sgcadmin.forms.users import UserForm


__all__ = [
    "CalendarEventForm",
    "ClassForm",
    "DepartmentForm",
    "FieldSpec",
    "FormBinding",
    "FormOutcome",
    "GroupForm",
    "InstitutionForm",
    "MessageForm",
    "PromotionForm",
    "ReportForm",
    "ResultForm",
    "SectionForm",
    "UserForm",
]
