"""Message compose/edit dialog"""

from typing import Any, Dict, Optional

from sgcadmin.exceptions import LocalValidationError
from sgcadmin.forms.base import FieldSpec, FormBinding
from sgcadmin.models import AUDIENCE_TYPES, MESSAGE_TYPES, ROLES, Message
from sgcadmin.resources import MESSAGES
from sgcadmin.session import SessionContext


class MessageForm(FormBinding):
    descriptor = MESSAGES
    redirects = False
    fields = (
        FieldSpec("subject", "Subject", required=True),
        FieldSpec("content", "Content", required=True),
        FieldSpec("type", "Type", kind="choice", required=True, choices=MESSAGE_TYPES, default="email"),
        FieldSpec("targetAudience.type", "Audience", kind="choice", choices=AUDIENCE_TYPES, default="all"),
        FieldSpec("targetAudience.criteria.role", "Audience Role", kind="choice", choices=ROLES,
                  omit_blank=True),
        FieldSpec("targetAudience.criteria.institution", "Audience Institution", kind="ref", omit_blank=True),
        FieldSpec("targetAudience.criteria.department", "Audience Department", kind="ref", omit_blank=True),
        FieldSpec("scheduledFor", "Scheduled For", omit_blank=True),
    )

    def __init__(self, session: Optional[SessionContext] = None, record_id: Optional[str] = None,
                 status: str = "draft", **kwargs):
        super().__init__(session=session, record_id=record_id, **kwargs)
        self.message = Message(status=status)

    @property
    def status(self) -> str:
        return self.message.status

    def after_load(self, record: Dict[str, Any]) -> None:
        # The model also accepts the server's older names (body, messageType)
        self.message = Message.model_validate(record)
        self.values["content"] = self.message.content
        self.values["type"] = self.message.type

    def check(self) -> None:
        if self.is_edit and not self.message.is_editable:
            raise LocalValidationError("Only draft messages can be edited", field="status")

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body.setdefault("targetAudience", {}).setdefault("criteria", {})
        body.setdefault("scheduledFor", None)
        return body

    @property
    def success_message(self) -> str:
        return "Message updated successfully" if self.is_edit else "Message created successfully"

    @property
    def failure_message(self) -> str:
        return "Failed to save message"
