"""
Dashboard summary: organisation, user and administrative counts for the
selected institution (or every institution for a super admin without one).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sgcadmin.api_client import ApiClient
from sgcadmin.banners import BannerState
from sgcadmin.config import AdminConfig
from sgcadmin.exceptions import ErrorKind, SGCAdminError, banner_text
from sgcadmin.logging_config import get_logger
from sgcadmin.session import SessionContext


logger = get_logger(__name__)


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


@dataclass
class DashboardSummary:
    overview: Dict[str, Any] = field(default_factory=dict)
    institutions: Dict[str, Any] = field(default_factory=dict)
    users: Dict[str, Any] = field(default_factory=dict)
    growth: Dict[str, Any] = field(default_factory=dict)
    finance: Dict[str, Any] = field(default_factory=dict)
    administrative: Dict[str, Any] = field(default_factory=dict)
    upcoming_events: List[Dict[str, Any]] = field(default_factory=list)
    recent_institutions: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_data(cls, data: Any) -> "DashboardSummary":
        data = data if isinstance(data, dict) else {}
        return cls(
            overview=_section(data, "overview"),
            institutions=_section(data, "institutions"),
            users=_section(data, "users"),
            growth=_section(data, "growth"),
            finance=_section(data, "finance"),
            administrative=_section(data, "administrative"),
            upcoming_events=[e for e in data.get("upcomingEvents") or [] if isinstance(e, dict)],
            recent_institutions=[i for i in data.get("recentInstitutions") or [] if isinstance(i, dict)],
        )

    @property
    def role_breakdown(self) -> Dict[str, Any]:
        return _section(self.users, "roleBreakdown")

    def figures(self) -> Dict[str, Any]:
        """Headline numbers in display order"""
        roles = self.role_breakdown
        figures = {
            "Institutions": self.overview.get("totalInstitutions", self.institutions.get("total")),
            "Active institutions": self.overview.get("activeInstitutions", self.institutions.get("active")),
            "Users": self.overview.get("totalUsers", self.users.get("total")),
            "Students": roles.get("students"),
            "Teachers": roles.get("teachers"),
            "Admins": roles.get("admins"),
            "New users (30 days)": self.growth.get("usersLast30Days"),
            "Pending admissions": self.administrative.get("pendingAdmissions"),
        }
        return {label: value for label, value in figures.items() if value is not None}


class DashboardPage:
    def __init__(self, api: ApiClient, session: SessionContext, config: Optional[AdminConfig] = None):
        self.api = api
        self.session = session
        self.config = config or AdminConfig()
        self.banners = BannerState(self.config.success_banner_seconds)
        self.summary: Optional[DashboardSummary] = None
        self.unauthorized = False

    async def open(self) -> Optional[DashboardSummary]:
        return await self.load()

    async def load(self) -> Optional[DashboardSummary]:
        """Failures keep the previous summary and set the error banner"""
        institution = self.session.current_institution_id()
        params = {"institution": institution} if institution else None
        try:
            response = await self.api.get("dashboard/stats", params=params)
        except SGCAdminError as e:
            self.unauthorized = e.kind == ErrorKind.UNAUTHORIZED
            self.banners.error(banner_text(e, "Failed to fetch dashboard data"))
            logger.warning(f"Dashboard load failed: {e.message}")
            return None
        self.summary = DashboardSummary.from_data(response.data)
        return self.summary

    def close(self) -> None:
        """Nothing to release"""
