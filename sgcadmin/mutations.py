"""
Mutation Executor - one create/update/delete/custom-action request

The executor never validates and never raises for request failures: it turns
every outcome into a MutationResult. Refreshing the affected list afterwards
is the caller's job.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sgcadmin.api_client import ApiClient
from sgcadmin.exceptions import ErrorKind, SGCAdminError
from sgcadmin.logging_config import get_logger
from sgcadmin.resources import ResourceDescriptor


logger = get_logger(__name__)

# HTTP method each custom action uses on the backend
ACTION_METHODS = {
    "toggle-status": "PUT",
    "publish": "PUT",
    "send": "POST",
    "generate": "GET",
}


@dataclass
class MutationResult:
    """Outcome of one mutation"""
    ok: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    status: Optional[int] = None
    # False when ``message`` came from the error class default, not the backend
    has_message: bool = False

    def banner(self, fallback: str) -> str:
        """Backend message when present, else ``fallback``"""
        return self.message if self.has_message and self.message else fallback


class MutationExecutor:
    """
    Usage:
        executor = MutationExecutor(api)
        result = await executor.action(INSTITUTIONS, institution.id, "toggle-status")
        if result.ok:
            await controller.refresh()
    """

    def __init__(self, api: ApiClient):
        self.api = api

    async def execute(self, method: str, path: str, body: Any = None) -> MutationResult:
        method = method.upper()
        try:
            if method == "GET":
                response = await self.api.request(method, path)
            else:
                response = await self.api.request(method, path, json=body)
        except SGCAdminError as e:
            logger.warning(f"{method} {path} failed: {e.kind.value} ({e.status}) {e.message}")
            return MutationResult(
                ok=False,
                message=e.message,
                error=e.kind,
                status=e.status,
                has_message=e.has_message,
            )

        logger.info(f"{method} {path} succeeded")
        return MutationResult(
            ok=True,
            data=response.data,
            message=response.message,
            status=response.status,
            has_message=bool(response.message),
        )

    # ==================== Conveniences ====================

    async def create(self, descriptor: ResourceDescriptor, body: Any) -> MutationResult:
        return await self.execute("POST", descriptor.endpoint, body)

    async def update(self, descriptor: ResourceDescriptor, record_id: str, body: Any) -> MutationResult:
        return await self.execute("PUT", descriptor.item_path(record_id), body)

    async def delete(self, descriptor: ResourceDescriptor, record_id: str) -> MutationResult:
        """Callers must have obtained the user's confirmation first"""
        return await self.execute("DELETE", descriptor.item_path(record_id))

    async def action(self, descriptor: ResourceDescriptor, record_id: str, action: str,
                     body: Any = None) -> MutationResult:
        try:
            method = ACTION_METHODS[action]
        except KeyError:
            raise ValueError(f"Unknown action '{action}'") from None
        if body is None and method in ("PUT", "POST"):
            body = {}
        return await self.execute(method, descriptor.action_path(record_id, action), body)
