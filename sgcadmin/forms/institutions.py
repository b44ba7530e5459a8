"""Institution create/edit form (super admins only)"""

from datetime import date
from typing import Any, Optional

from sgcadmin.exceptions import ForbiddenError
from sgcadmin.forms.base import FieldSpec, FormBinding
from sgcadmin.models import INSTITUTION_TYPES
from sgcadmin.resources import INSTITUTIONS
from sgcadmin.session import SessionContext


class InstitutionForm(FormBinding):
    descriptor = INSTITUTIONS
    fields = (
        FieldSpec("name", "Name", required=True),
        FieldSpec("code", "Code", required=True),
        FieldSpec("type", "Type", kind="choice", required=True, choices=INSTITUTION_TYPES, default="school"),
        FieldSpec("email", "Email"),
        FieldSpec("phone", "Phone"),
        FieldSpec("website", "Website"),
        FieldSpec("establishedYear", "Established", kind="number", default=date.today().year),
        FieldSpec("address.street", "Street"),
        FieldSpec("address.city", "City"),
        FieldSpec("address.state", "State"),
        FieldSpec("address.country", "Country", default="Pakistan"),
        FieldSpec("address.zipCode", "Zip Code"),
        FieldSpec("principal.name", "Principal"),
        FieldSpec("principal.email", "Principal Email"),
        FieldSpec("principal.phone", "Principal Phone"),
    )

    def __init__(self, session: Optional[SessionContext] = None, record_id: Optional[str] = None, **kwargs):
        if session is not None and not session.is_super_admin():
            raise ForbiddenError("Only super admins can manage institutions")
        super().__init__(session=session, record_id=record_id, **kwargs)

    def set(self, name: str, value: Any):
        if name == "code" and isinstance(value, str):
            value = value.upper()
        return super().set(name, value)

    def after_load(self, record) -> None:
        self.values["code"] = str(self.values.get("code") or "").upper()

    def normalize(self, body):
        body["code"] = str(body.get("code") or "").upper()
        return body
