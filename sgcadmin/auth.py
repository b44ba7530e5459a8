"""
SGC Admin Authentication
========================

Login flow:
1. POST auth/login with email + password (no bearer token)
2. Non super admins: their own institution becomes selectedInstitution
   and the session is stored right away
3. Super admins: institutions are fetched with the new token
     - none exist  → store the session without selectedInstitution
     - otherwise   → the user picks one, then the session is stored

Nothing is written to the session until the flow completes, so an abandoned
institution choice leaves the previous session untouched.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sgcadmin.api_client import ApiClient
from sgcadmin.exceptions import (
    ForbiddenError,
    LocalValidationError,
    SGCAdminError,
    UnauthorizedError,
    banner_text,
)
from sgcadmin.ids import resolve_id
from sgcadmin.logging_config import get_logger
from sgcadmin.models import Institution
from sgcadmin.resources import find_by_id
from sgcadmin.session import SessionContext


logger = get_logger(__name__)

DASHBOARD_ROUTE = "/dashboard"
LOGIN_ROUTE = "/login"


@dataclass
class PendingLogin:
    """Credentials accepted, institution choice outstanding"""
    token: str
    user: Dict[str, Any]
    institutions: List[Institution] = field(default_factory=list)


@dataclass
class LoginResult:
    completed: bool
    redirect: Optional[str] = None
    pending: Optional[PendingLogin] = None

    @property
    def needs_institution(self) -> bool:
        return self.pending is not None


class AuthManager:
    """
    Login, institution selection, institution switch and logout.

    Usage:
        auth = AuthManager(api, session)
        result = await auth.login(email, password)
        if result.needs_institution:
            auth.complete_login(result.pending, chosen_id)
    """

    def __init__(self, api: ApiClient, session: SessionContext):
        self.api = api
        self.session = session

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Raises:
            LocalValidationError: email or password empty (nothing sent)
            SGCAdminError: login rejected; ``message`` is what to show
        """
        email = (email or "").strip()
        if not email or not password:
            raise LocalValidationError("Please enter email and password")

        try:
            response = await self.api.post("auth/login", json={"email": email, "password": password})
        except SGCAdminError as e:
            logger.log_auth_event("login_failed", user_email=email, success=False, reason=e.kind.value)
            raise type(e)(banner_text(e, "Login failed. Please try again."), status=e.status,
                          details=e.details) from e

        data = response.data if isinstance(response.data, dict) else {}
        token = data.get("token")
        user = data.get("user")
        if not token or not isinstance(user, dict):
            raise UnauthorizedError("Login failed. Please try again.")

        if user.get("role") != "super_admin":
            self.session.store_login(token, user, selected_institution=user.get("institution"))
            logger.log_auth_event("login", account=resolve_id(user.get("_id", user.get("id"))),
                                  user_email=email, success=True)
            return LoginResult(completed=True, redirect=DASHBOARD_ROUTE)

        institutions = await self._fetch_institutions(token)
        if not institutions:
            # Nothing to choose from yet; the super admin creates one from the dashboard
            self.session.store_login(token, user)
            logger.log_auth_event("login", user_email=email, success=True, institutions=0)
            return LoginResult(completed=True, redirect=DASHBOARD_ROUTE)

        return LoginResult(
            completed=False,
            pending=PendingLogin(token=token, user=user, institutions=institutions),
        )

    async def _fetch_institutions(self, token: str) -> List[Institution]:
        try:
            response = await self.api.get("institutions", token=token)
        except SGCAdminError as e:
            raise type(e)(banner_text(e, "Failed to load institutions"), status=e.status,
                          details=e.details) from e
        institutions = []
        for raw in response.items:
            try:
                institutions.append(Institution.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed institution: {e}")
        return institutions

    def complete_login(self, pending: PendingLogin, institution_id: Any) -> LoginResult:
        """Store the session with the super admin's chosen institution"""
        chosen = resolve_id(institution_id)
        if not chosen:
            raise LocalValidationError("Please select an institution", field="institution")
        if pending.institutions and not find_by_id(pending.institutions, chosen):
            raise LocalValidationError("Please select an institution", field="institution")
        self.session.store_login(pending.token, pending.user, selected_institution=chosen)
        logger.log_auth_event("login", user_email=pending.user.get("email"), success=True,
                              institution=chosen)
        return LoginResult(completed=True, redirect=DASHBOARD_ROUTE)

    async def available_institutions(self) -> List[Institution]:
        """Institutions a super admin can switch between"""
        if not self.session.is_super_admin():
            raise ForbiddenError("Only super admins can switch institutions")
        return await self._fetch_institutions(self.session.token or "")

    async def switch_institution(self, institution_id: Any) -> Institution:
        institutions = await self.available_institutions()
        institution = find_by_id(institutions, resolve_id(institution_id))
        if institution is None:
            raise LocalValidationError("Please select an institution", field="institution")
        self.session.select_institution({"_id": institution.id, "name": institution.name, "code": institution.code})
        logger.log_auth_event("switch_institution", institution=institution.id, success=True)
        return institution

    def logout(self) -> str:
        user_id = self.session.user_id
        self.session.clear()
        logger.log_auth_event("logout", success=True, account=user_id)
        return LOGIN_ROUTE
