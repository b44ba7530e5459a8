"""
Unit Tests for Resource List Controller
Tests for: request per query change, params, sequencing, dispose, errors
"""
import asyncio

import pytest

from sgcadmin.controller import ResourceListController
from sgcadmin.exceptions import ErrorKind, ForbiddenError
from sgcadmin.resources import CALENDAR, INSTITUTIONS, MESSAGES, RESULTS
from tests.conftest import INSTITUTION_ID, envelope, make_institution


def result_row(result_id, subject="Math", status="draft"):
    return {"_id": result_id, "examName": "Midterm", "subject": subject, "status": status,
            "student": {"_id": f"s-{result_id}", "user": {"name": f"Student {result_id}"}}}


async def wait_for_requests(backend, count):
    while len(backend.requests) < count:
        await asyncio.sleep(0)


class TestRequestPerChange:
    """Every filter change triggers exactly one list request"""

    async def test_filter_change_issues_one_request(self, backend, admin, api):
        backend.on("GET", "results", data=[])
        controller = ResourceListController(RESULTS, api, session=admin)
        await controller.start()
        backend.reset()

        controller.set_filter("status", "draft")
        await controller.wait_idle()

        assert len(backend.calls("GET", "results")) == 1
        assert backend.requests[0].params == {"institution": INSTITUTION_ID, "status": "draft"}

    async def test_update_of_several_filters_is_one_request(self, backend, admin, api):
        backend.on("GET", "results", data=[])
        controller = ResourceListController(RESULTS, api, session=admin)
        await controller.start()
        backend.reset()

        controller.update_filters(status="published", examType="final", academicYear="2024-2025")
        await controller.wait_idle()

        assert len(backend.requests) == 1

    async def test_cleared_filter_is_not_sent(self, backend, admin, api):
        backend.on("GET", "results", data=[])
        controller = ResourceListController(RESULTS, api, session=admin)
        controller.set_filter("status", "draft")
        await controller.start()
        backend.reset()

        controller.set_filter("status", "")
        await controller.wait_idle()

        assert backend.requests[0].params == {"institution": INSTITUTION_ID}

    async def test_local_filter_still_refetches(self, backend, super_admin, api):
        backend.on("GET", "institutions", data=[make_institution("a"), make_institution("b")])
        controller = ResourceListController(INSTITUTIONS, api, session=super_admin)
        await controller.start()
        backend.reset()

        controller.set_filter("search", "zzz")
        await controller.wait_idle()

        assert len(backend.requests) == 1
        assert backend.requests[0].params == {}
        assert controller.visible_items == []

    async def test_no_requests_before_start(self, backend, admin, api):
        controller = ResourceListController(RESULTS, api, session=admin)

        controller.set_filter("status", "draft")
        await controller.wait_idle()

        assert backend.requests == []


class TestRoleScope:
    async def test_admin_institution_is_locked(self, backend, admin, api):
        controller = ResourceListController(RESULTS, api, session=admin)

        assert controller.institution_locked is True
        with pytest.raises(ForbiddenError):
            controller.set_filter("institution", "inst-2")

    async def test_super_admin_may_change_institution(self, backend, super_admin, api):
        backend.on("GET", "results", data=[])
        controller = ResourceListController(RESULTS, api, session=super_admin)
        await controller.start()

        controller.set_filter("institution", "inst-2")
        await controller.wait_idle()

        assert controller.institution_locked is False
        assert backend.requests[-1].params == {"institution": "inst-2"}

    async def test_unknown_filter_rejected(self, admin, api):
        controller = ResourceListController(RESULTS, api, session=admin)

        with pytest.raises(ValueError):
            controller.set_filter("colour", "blue")


class TestSequencing:
    async def test_stale_response_discarded(self, backend, admin, api):
        gate = asyncio.Event()

        async def handler(request):
            if request.params.get("status") == "draft":
                await gate.wait()
                return envelope([result_row("old")])
            if request.params.get("status") == "published":
                gate.set()
                return envelope([result_row("new", status="published")])
            return envelope([])

        backend.on("GET", "results", handler=handler)
        controller = ResourceListController(RESULTS, api, session=admin)
        await controller.start()

        controller.set_filter("status", "draft")
        await wait_for_requests(backend, 2)
        controller.set_filter("status", "published")
        await controller.wait_idle()

        assert [r.id for r in controller.items] == ["new"]
        assert controller.loading is False

    async def test_disposed_controller_ignores_late_response(self, backend, admin, api):
        gate = asyncio.Event()

        async def handler(request):
            await gate.wait()
            return envelope([result_row("late")])

        backend.on("GET", "results", handler=handler)
        controller = ResourceListController(RESULTS, api, session=admin)
        task = asyncio.ensure_future(controller.start())
        await wait_for_requests(backend, 1)

        controller.dispose()
        gate.set()
        applied = await task

        assert applied is False
        assert controller.items == []

    async def test_disposed_controller_stops_fetching(self, backend, admin, api):
        backend.on("GET", "results", data=[])
        controller = ResourceListController(RESULTS, api, session=admin)
        await controller.start()
        controller.dispose()
        backend.reset()

        controller.query.set_filter("status", "draft")
        refreshed = await controller.refresh()

        assert refreshed is False
        assert backend.requests == []


class TestErrors:
    async def test_error_keeps_previous_items(self, backend, admin, api):
        backend.on("GET", "results", data=[result_row("r1"), result_row("r2")])
        errors = []
        controller = ResourceListController(RESULTS, api, session=admin, on_error=errors.append)
        await controller.start()

        backend.on("GET", "results", status=500)
        controller.set_filter("status", "draft")
        await controller.wait_idle()

        assert [r.id for r in controller.items] == ["r1", "r2"]
        assert controller.error == ErrorKind.SERVER_ERROR
        assert controller.error_message == "Failed to fetch results"
        assert len(errors) == 1

    async def test_backend_message_is_shown_verbatim(self, backend, admin, api):
        backend.on("GET", "results", status=403, message="Not your institution")
        controller = ResourceListController(RESULTS, api, session=admin)

        await controller.start()

        assert controller.error == ErrorKind.FORBIDDEN
        assert controller.error_message == "Not your institution"

    async def test_success_clears_error(self, backend, admin, api):
        backend.on("GET", "results", status=500)
        controller = ResourceListController(RESULTS, api, session=admin)
        await controller.start()

        backend.on("GET", "results", data=[result_row("r1")])
        await controller.refresh()

        assert controller.error is None
        assert controller.error_message is None


class TestViews:
    async def test_local_pagination(self, backend, super_admin, api):
        backend.on("GET", "institutions", data=[make_institution(f"i{n}") for n in range(25)])
        controller = ResourceListController(INSTITUTIONS, api, session=super_admin, page_size=10)
        await controller.start()

        controller.query.set_page(2)
        await controller.wait_idle()

        assert controller.total == 25
        assert controller.page_count == 3
        assert [i.id for i in controller.visible_items] == [f"i{n}" for n in range(20, 25)]

    async def test_server_pagination_sends_page_and_limit(self, backend, admin, api):
        backend.on("GET", "messages", data=[{"_id": "m1", "subject": "Hi"}], total=31)
        controller = ResourceListController(MESSAGES, api, session=admin, page_size=10)
        await controller.start()

        controller.query.set_page(3)
        await controller.wait_idle()

        assert backend.requests[-1].params == {"page": "4", "limit": "10"}
        assert controller.total == 31
        assert controller.page_count == 4

    async def test_calendar_date_filter_is_local(self, backend, admin, api):
        backend.on("GET", "calendar", data=[
            {"_id": "e1", "title": "Sports Day", "startDate": "2024-03-01", "endDate": "2024-03-03"},
            {"_id": "e2", "title": "Exams", "startDate": "2024-04-10", "endDate": "2024-04-20"},
        ])
        controller = ResourceListController(CALENDAR, api, session=admin)
        await controller.start()

        controller.set_filter("date", "2024-03-02")
        await controller.wait_idle()

        assert backend.requests[-1].params == {}
        assert [e.id for e in controller.visible_items] == ["e1"]
