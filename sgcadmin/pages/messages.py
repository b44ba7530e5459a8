"""Messages: compose, send and delete; templates for quick starts"""

from typing import Any, Dict, List, Optional

from sgcadmin.exceptions import SGCAdminError
from sgcadmin.forms.messages import MessageForm
from sgcadmin.logging_config import get_logger
from sgcadmin.mutations import MutationResult
from sgcadmin.pages.base import Confirm, ListPage
from sgcadmin.resources import MESSAGES


logger = get_logger(__name__)


class MessagesPage(ListPage):
    descriptor = MESSAGES
    form_class = MessageForm

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.templates: List[Dict[str, Any]] = []

    async def open(self) -> None:
        await super().open()
        await self.load_templates()

    async def load_templates(self) -> List[Dict[str, Any]]:
        try:
            response = await self.api.get("messages/templates")
        except SGCAdminError as e:
            # Templates are a convenience; the page works without them
            logger.warning(f"Failed to fetch templates: {e.message}")
            return self.templates
        self.templates = [t for t in response.items if isinstance(t, dict)]
        return self.templates

    def new_form(self, record_id: Optional[str] = None, template: Optional[Dict[str, Any]] = None,
                 **kwargs: Any) -> MessageForm:
        form = super().new_form(record_id, **kwargs)
        if template:
            form.set_many({
                key: template[key] for key in ("subject", "content", "type") if template.get(key)
            })
        return form

    def edit_form(self, record_id: str) -> MessageForm:
        """Form preloaded from the listed message (drafts only are editable)"""
        message = self.controller.find(record_id)
        form = self.new_form(record_id)
        if message is not None:
            form.load(message)
        return form

    async def send(self, record_id: str, confirm: Optional[Confirm] = None) -> Optional[MutationResult]:
        if confirm is not None and not confirm("Send this message now?"):
            return None
        result = await self.executor.action(self.descriptor, record_id, "send")
        return await self._finish(result, "Message sent successfully", "Failed to send message")
