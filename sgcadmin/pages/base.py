"""
List page - one resource list plus the actions a user can take on its rows.

Every page action is wrapped: request failures end up in the banner and never
propagate, so a failed toggle still leaves the list on screen.
"""

from typing import Any, Callable, Optional, Type

from sgcadmin.api_client import ApiClient
from sgcadmin.banners import BannerState
from sgcadmin.config import AdminConfig
from sgcadmin.controller import ResourceListController
from sgcadmin.exceptions import ErrorKind, ForbiddenError, SGCAdminError
from sgcadmin.forms.base import FormBinding, FormOutcome
from sgcadmin.logging_config import get_logger
from sgcadmin.mutations import MutationExecutor, MutationResult
from sgcadmin.resources import ResourceDescriptor
from sgcadmin.session import SessionContext


logger = get_logger(__name__)

Confirm = Callable[[str], bool]


class ListPage:
    descriptor: ResourceDescriptor
    form_class: Optional[Type[FormBinding]] = None

    def __init__(self, api: ApiClient, session: SessionContext, config: Optional[AdminConfig] = None):
        if self.descriptor.super_admin_only and not session.is_super_admin():
            raise ForbiddenError(f"Only super admins can manage {self.descriptor.label}")
        self.api = api
        self.session = session
        self.config = config or AdminConfig()
        self.executor = MutationExecutor(api)
        self.banners = BannerState(self.config.success_banner_seconds)
        self.unauthorized = False
        self.controller = ResourceListController(
            self.descriptor,
            api,
            session=session,
            page_size=self.config.page_size,
            on_error=self._on_list_error,
        )

    @property
    def title(self) -> str:
        return self.descriptor.label.title()

    # ==================== Lifecycle ====================

    async def open(self) -> None:
        await self.controller.start()

    def close(self) -> None:
        self.controller.dispose()

    async def __aenter__(self) -> "ListPage":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _on_list_error(self, error: SGCAdminError) -> None:
        if error.kind == ErrorKind.UNAUTHORIZED:
            self.unauthorized = True
        self.banners.error(self.controller.error_message or error.message)

    # ==================== Listing ====================

    @property
    def items(self) -> list:
        return self.controller.visible_items

    @property
    def institution_selector_enabled(self) -> bool:
        """Non-super-admins see their institution read-only"""
        return not self.controller.institution_locked

    async def apply_filters(self, **filters: Any) -> None:
        self.controller.update_filters(**filters)
        await self.controller.wait_idle()

    async def goto_page(self, page: int) -> None:
        self.controller.query.set_page(page)
        await self.controller.wait_idle()

    async def set_page_size(self, page_size: int) -> None:
        self.controller.query.set_page_size(page_size)
        await self.controller.wait_idle()

    async def reload(self) -> None:
        """Re-fetch after a mutation"""
        await self.controller.refresh()

    # ==================== Mutations ====================

    async def _finish(self, result: MutationResult, success: str, failure: str) -> MutationResult:
        if result.ok:
            self.banners.success(success)
            await self.reload()
        else:
            if result.error == ErrorKind.UNAUTHORIZED:
                self.unauthorized = True
            self.banners.error(result.banner(failure))
        return result

    def _singular(self) -> str:
        return self.descriptor.singular.capitalize()

    async def toggle(self, record_id: str) -> MutationResult:
        if not self.descriptor.supports_toggle:
            raise ValueError(f"{self.title} cannot be activated or deactivated")
        result = await self.executor.action(self.descriptor, record_id, "toggle-status")
        return await self._finish(
            result,
            f"{self._singular()} status updated successfully",
            f"Failed to update {self.descriptor.singular} status",
        )

    async def delete(self, record_id: str, confirm: Confirm) -> Optional[MutationResult]:
        """Delete after ``confirm`` says yes; returns None when declined"""
        if not self.descriptor.supports_delete:
            raise ValueError(f"{self.title} cannot be deleted")
        if not confirm(f"Are you sure you want to delete this {self.descriptor.singular}?"):
            logger.debug(f"Delete of {self.descriptor.singular} {record_id} cancelled")
            return None
        result = await self.executor.delete(self.descriptor, record_id)
        return await self._finish(
            result,
            f"{self._singular()} deleted successfully",
            f"Failed to delete {self.descriptor.singular}",
        )

    # ==================== Forms ====================

    def new_form(self, record_id: Optional[str] = None, **kwargs: Any) -> FormBinding:
        if self.form_class is None:
            raise ValueError(f"{self.title} has no form")
        return self.form_class(api=self.api, session=self.session, record_id=record_id,
                               redirect_delay=self.config.redirect_delay, **kwargs)

    async def submit(self, form: FormBinding) -> FormOutcome:
        outcome = await form.submit(self.executor)
        if outcome.ok:
            self.banners.success(outcome.message or "Saved")
            await self.reload()
        else:
            if outcome.error == ErrorKind.UNAUTHORIZED:
                self.unauthorized = True
            self.banners.error(outcome.message or form.failure_message)
        return outcome
