"""
Unit Tests for List Pages
Tests for: toggle, delete confirmation, custom actions, settings, banners, dashboard
"""
import pytest

from sgcadmin.banners import BannerState
from sgcadmin.exceptions import ForbiddenError
from sgcadmin.forms.academics import DepartmentForm
from sgcadmin.pages import (
    DashboardPage,
    DepartmentsPage,
    InstitutionsPage,
    MessagesPage,
    ReportsPage,
    ResultsPage,
    page_for,
)
from sgcadmin.pages.settings import SettingsPage
from sgcadmin.renderer import format_cell
from tests.conftest import INSTITUTION_ID, envelope, make_institution, make_user


@pytest.fixture
def results_backend(backend):
    backend.on("GET", "results", data=[{"_id": "r1", "examName": "Midterm", "subject": "Math"}])
    backend.on("GET", "results/stats/overview", data={"total": 1, "published": 0})
    return backend


class TestToggle:
    async def test_toggle_refetches_and_flips_chip(self, backend, super_admin, api, config):
        """PUT toggle-status, then the list shows the new status"""
        institution = make_institution(INSTITUTION_ID, is_active=True)

        def toggle(request):
            institution["isActive"] = not institution["isActive"]
            return envelope(institution)

        backend.on("GET", "institutions", handler=lambda request: envelope([dict(institution)]))
        backend.on("PUT", f"institutions/{INSTITUTION_ID}/toggle-status", handler=toggle)
        page = InstitutionsPage(api, super_admin, config)
        await page.open()
        assert format_cell("is_active", page.items[0].is_active) == "[green]Active[/green]"

        result = await page.toggle(INSTITUTION_ID)

        assert result.ok is True
        put = backend.calls("PUT", f"institutions/{INSTITUTION_ID}/toggle-status")
        assert len(put) == 1
        assert put[0].json == {}
        assert len(backend.calls("GET", "institutions")) == 2
        assert format_cell("is_active", page.items[0].is_active) == "[red]Inactive[/red]"
        assert page.banners.success_text == "Institution status updated successfully"
        page.close()

    async def test_toggling_twice_restores_status(self, backend, super_admin, api, config):
        institution = make_institution(INSTITUTION_ID, is_active=True)

        def toggle(request):
            institution["isActive"] = not institution["isActive"]
            return envelope(institution)

        backend.on("GET", "institutions", handler=lambda request: envelope([dict(institution)]))
        backend.on("PUT", f"institutions/{INSTITUTION_ID}/toggle-status", handler=toggle)
        page = InstitutionsPage(api, super_admin, config)
        await page.open()

        await page.toggle(INSTITUTION_ID)
        assert page.items[0].is_active is False
        await page.toggle(INSTITUTION_ID)

        assert len(backend.calls("PUT", f"institutions/{INSTITUTION_ID}/toggle-status")) == 2
        assert page.items[0].is_active is True
        assert format_cell("is_active", page.items[0].is_active) == "[green]Active[/green]"
        page.close()

    async def test_failed_toggle_keeps_list(self, backend, super_admin, api, config):
        backend.on("GET", "institutions", data=[make_institution(INSTITUTION_ID)])
        backend.on("PUT", f"institutions/{INSTITUTION_ID}/toggle-status", status=500)
        page = InstitutionsPage(api, super_admin, config)
        await page.open()

        result = await page.toggle(INSTITUTION_ID)

        assert result.ok is False
        assert len(page.items) == 1
        assert page.banners.error_text == "Failed to update institution status"

    def test_institutions_page_is_super_admin_only(self, admin, api, config):
        with pytest.raises(ForbiddenError):
            InstitutionsPage(api, admin, config)


class TestDelete:
    async def test_declined_confirmation_sends_nothing(self, results_backend, admin, api, config):
        page = ResultsPage(api, admin, config)
        await page.open()
        results_backend.reset()
        prompts = []

        def decline(text):
            prompts.append(text)
            return False

        outcome = await page.delete("r1", decline)

        assert outcome is None
        assert prompts == ["Are you sure you want to delete this result?"]
        assert results_backend.requests == []

    async def test_confirmed_delete_reloads(self, results_backend, admin, api, config):
        results_backend.on("DELETE", "results/r1", data={})
        page = ResultsPage(api, admin, config)
        await page.open()
        results_backend.reset()

        outcome = await page.delete("r1", lambda text: True)

        assert outcome.ok is True
        assert [r.method for r in results_backend.requests][:2] == ["DELETE", "GET"]
        assert page.banners.success_text == "Result deleted successfully"

    async def test_toggle_not_supported_for_results(self, admin, api, config):
        page = ResultsPage(api, admin, config)

        with pytest.raises(ValueError):
            await page.toggle("r1")


class TestCustomActions:
    async def test_publish_result(self, results_backend, admin, api, config):
        results_backend.on("PUT", "results/r1/publish", data={"_id": "r1", "status": "published"})
        page = ResultsPage(api, admin, config)
        await page.open()

        result = await page.publish("r1")

        assert result.ok is True
        assert results_backend.calls("PUT", "results/r1/publish")[0].json == {}
        assert page.stats == {"total": 1, "published": 0}
        assert page.banners.success_text == "Result published successfully"

    async def test_stats_use_current_filters(self, results_backend, admin, api, config):
        page = ResultsPage(api, admin, config)
        await page.open()

        await page.apply_filters(examType="final")

        assert results_backend.calls("GET", "results/stats/overview")[-1].params == {
            "institution": INSTITUTION_ID, "examType": "final",
        }

    async def test_send_message(self, backend, admin, api, config):
        backend.on("GET", "messages", data=[{"_id": "m1", "subject": "Hi", "status": "draft"}])
        backend.on("GET", "messages/templates", data=[{"subject": "Welcome", "content": "Hello"}])
        backend.on("POST", "messages/m1/send", data={"_id": "m1", "status": "sent"})
        page = MessagesPage(api, admin, config)
        await page.open()

        result = await page.send("m1")

        assert result.ok is True
        assert backend.calls("POST", "messages/m1/send")[0].json == {}
        assert page.templates == [{"subject": "Welcome", "content": "Hello"}]

    async def test_send_declined(self, backend, admin, api, config):
        page = MessagesPage(api, admin, config)

        result = await page.send("m1", confirm=lambda text: False)

        assert result is None
        assert backend.calls("POST") == []

    async def test_generate_report(self, backend, admin, api, config):
        backend.on("GET", "reports/rp1/generate",
                   data={"summary": {"students": 12}, "data": [{"name": "Ali"}], "generatedAt": "2024-05-01"})
        page = ReportsPage(api, admin, config)

        report = await page.generate("rp1")

        assert report.summary == {"students": 12}
        assert report.generated_at == "2024-05-01"

    async def test_generate_report_failure(self, backend, admin, api, config):
        backend.on("GET", "reports/rp1/generate", status=500)
        page = ReportsPage(api, admin, config)

        report = await page.generate("rp1")

        assert report is None
        assert page.banners.error_text == "Failed to generate report"


class TestSettings:
    @pytest.fixture
    def settings_backend(self, backend):
        backend.on("GET", "settings/by-category", data={
            "general": [{"key": "siteName", "value": "SGC", "dataType": "string"}],
            "academic": [
                {"key": "maxStudents", "value": 30, "dataType": "number"},
                {"key": "schemaVersion", "value": 3, "dataType": "number", "isEditable": False},
            ],
        })
        return backend

    async def test_load_groups_by_category(self, settings_backend, admin, api, config):
        page = SettingsPage(api, admin, config)

        await page.open()

        assert sorted(page.categories) == ["academic", "general"]
        assert page.find("maxStudents").value == 30

    async def test_update_coerces_and_puts_one_key(self, settings_backend, admin, api, config):
        settings_backend.on("PUT", "settings/maxStudents", data={})
        page = SettingsPage(api, admin, config)
        await page.open()

        assert await page.update("maxStudents", "45") is True

        assert settings_backend.calls("PUT", "settings/maxStudents")[0].json == {"value": 45}
        assert page.banners.success_text == "Setting updated successfully"

    async def test_read_only_setting_rejected(self, settings_backend, admin, api, config):
        page = SettingsPage(api, admin, config)
        await page.open()

        assert await page.update("schemaVersion", "4") is False

        assert page.banners.error_text == "schemaVersion is read only"
        assert settings_backend.calls("PUT") == []

    async def test_save_sends_every_setting(self, settings_backend, admin, api, config):
        settings_backend.on("PUT", "settings", data={})
        page = SettingsPage(api, admin, config)
        await page.open()
        page.change("siteName", "New Name")

        assert await page.save() is True

        body = settings_backend.calls("PUT", "settings")[0].json
        assert {"key": "siteName", "value": "New Name"} in body["settings"]
        assert len(body["settings"]) == 3


class TestBanners:
    def test_success_banner_expires(self):
        now = [100.0]
        banners = BannerState(3.0, clock=lambda: now[0])

        banners.success("Saved")
        now[0] = 102.9
        assert banners.success_text == "Saved"
        now[0] = 103.0
        assert banners.current is None

    def test_error_banner_stays(self):
        now = [0.0]
        banners = BannerState(3.0, clock=lambda: now[0])

        banners.error("Failed to fetch results")
        now[0] = 3600.0

        assert banners.error_text == "Failed to fetch results"

    async def test_unauthorized_list_marks_page(self, backend, admin, api, config):
        backend.on("GET", "results", status=401, message="Token expired")
        backend.on("GET", "results/stats/overview", data={})
        page = ResultsPage(api, admin, config)

        await page.open()

        assert page.unauthorized is True
        assert page.banners.error_text == "Token expired"


class TestPageLookup:
    def test_page_for_resource(self):
        assert page_for("results") is ResultsPage

    def test_settings_has_no_list_page(self):
        with pytest.raises(KeyError):
            page_for("settings")


class TestDepartmentsPage:
    async def test_new_form_and_toggle(self, backend, admin, api, config):
        backend.on("GET", "departments", data=[{"_id": "d1", "name": "Science", "code": "SCI",
                                                "head": {"name": "Dr. Rana"}, "isActive": True}])
        backend.on("PUT", "departments/d1/toggle-status", data={"_id": "d1", "isActive": False})
        page = DepartmentsPage(api, admin, config)
        await page.open()

        result = await page.toggle("d1")

        assert isinstance(page.new_form(), DepartmentForm)
        assert page.items[0].head_name == "Dr. Rana"
        assert result.ok is True
        assert page.banners.success_text == "Department status updated successfully"
        page.close()


class TestDashboard:
    async def test_summary_for_selected_institution(self, backend, admin, api, config):
        backend.on("GET", "dashboard/stats", data={
            "overview": {"totalInstitutions": 1, "activeInstitutions": 1, "totalUsers": 40},
            "users": {"total": 40, "roleBreakdown": {"students": 35, "teachers": 4, "admins": 1}},
            "administrative": {"pendingAdmissions": 3, "overdueFees": 0},
            "upcomingEvents": [{"title": "Sports Day", "type": "event", "startDate": "2024-06-01T00:00:00Z"}],
        })
        page = DashboardPage(api, admin, config)

        summary = await page.open()

        assert backend.calls("GET", "dashboard/stats")[0].params == {"institution": INSTITUTION_ID}
        assert summary.figures()["Students"] == 35
        assert summary.figures()["Pending admissions"] == 3
        assert "New users (30 days)" not in summary.figures()
        assert summary.upcoming_events[0]["title"] == "Sports Day"

    async def test_super_admin_without_institution_sees_everything(self, backend, session, api, config):
        session.store_login("tok", make_user("super_admin", institution=None))
        backend.on("GET", "dashboard/stats", data={"overview": {"totalInstitutions": 7}})
        page = DashboardPage(api, session, config)

        await page.open()

        assert backend.calls("GET", "dashboard/stats")[0].params == {}
        assert page.summary.figures() == {"Institutions": 7}

    async def test_failure_sets_fallback_banner(self, backend, admin, api, config):
        backend.on("GET", "dashboard/stats", status=500)
        page = DashboardPage(api, admin, config)

        assert await page.open() is None

        assert page.banners.error_text == "Failed to fetch dashboard data"
        assert page.unauthorized is False
