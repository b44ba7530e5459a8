"""
API Client - every HTTP call to the administration backend goes through here

Responsibilities:
  - resolve paths against {api_origin}/api/v1
  - attach ``Authorization: Bearer <token>`` (everything but POST auth/login)
  - unwrap the ``{data, message}`` envelope
  - turn non-2xx responses and transport failures into SGCAdminError subclasses
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from sgcadmin.config import AdminConfig
from sgcadmin.exceptions import SGCAdminError, ServerError, error_for_status
from sgcadmin.logging_config import generate_request_id, get_logger, set_request_id
from sgcadmin.session import SessionContext


logger = get_logger(__name__)

# Requests that never carry a bearer token
ANONYMOUS_ROUTES = {("POST", "auth/login")}


@dataclass
class ApiResponse:
    """Unwrapped API response"""
    status: int
    data: Any
    message: Optional[str] = None
    total: Optional[int] = None
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def items(self) -> list:
        """``data`` as a list (empty when the payload is not one)"""
        return self.data if isinstance(self.data, list) else []


def _extract_total(body: Dict[str, Any], data: Any) -> Optional[int]:
    for key in ("total", "count"):
        if isinstance(body.get(key), int):
            return body[key]
    pagination = body.get("pagination")
    if isinstance(pagination, dict):
        for key in ("total", "totalItems", "count"):
            if isinstance(pagination.get(key), int):
                return pagination[key]
    if isinstance(data, list):
        return len(data)
    return None


class ApiClient:
    """
    Async client for the administration API.

    Usage:
        async with ApiClient.from_config(config, session) as api:
            response = await api.get("institutions", params={"search": "north"})
            for item in response.items:
                ...
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[SessionContext] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        client_kwargs: Dict[str, Any] = {"transport": transport}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._client = httpx.AsyncClient(**client_kwargs)

    @classmethod
    def from_config(cls, config: AdminConfig, session: Optional[SessionContext] = None,
                    transport: Optional[httpx.AsyncBaseTransport] = None) -> "ApiClient":
        return cls(config.api_base_url, session=session, timeout=config.timeout, transport=transport)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, method: str, path: str, token: Optional[str]) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if (method.upper(), path.strip("/")) in ANONYMOUS_ROUTES:
            return headers
        bearer = token or (self.session.token if self.session else None)
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        token: Optional[str] = None,
    ) -> ApiResponse:
        """
        Issue one request and return the unwrapped envelope.

        Raises:
            SGCAdminError subclass matching the HTTP status, or ServerError
            for transport failures.
        """
        method = method.upper()
        request_id = generate_request_id()
        set_request_id(request_id)
        headers = self._headers(method, path, token)
        headers["X-Request-ID"] = request_id

        started = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                self.url_for(path),
                params=params or None,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as e:
            duration_ms = (time.perf_counter() - started) * 1000
            logger.log_request(method, path, 0, duration_ms, error=str(e))
            raise ServerError(status=0, details={"path": path, "cause": str(e)}) from e

        duration_ms = (time.perf_counter() - started) * 1000
        logger.log_request(method, path, response.status_code, duration_ms)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}
        message = body.get("message") if isinstance(body.get("message"), str) else None

        if not response.is_success:
            raise error_for_status(response.status_code, message, details={"path": path})

        data = body.get("data")
        return ApiResponse(
            status=response.status_code,
            data=data,
            message=message,
            total=_extract_total(body, data),
            body=body,
        )

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> ApiResponse:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs) -> ApiResponse:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs) -> ApiResponse:
        return await self.request("PUT", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs) -> ApiResponse:
        return await self.request("DELETE", path, **kwargs)


__all__ = ["ApiClient", "ApiResponse", "SGCAdminError"]
