"""
Unit Tests for the Result Form
Tests for: marks rules, payload shape, institution/class/section cascade
"""
from datetime import date

import pytest

from sgcadmin.cascade import CascadeState
from sgcadmin.exceptions import ForbiddenError
from sgcadmin.forms.results import ResultForm, default_academic_year, students_from_admissions
from sgcadmin.mutations import MutationExecutor
from tests.conftest import INSTITUTION_ID, OTHER_INSTITUTION_ID

TODAY = date(2024, 5, 1)


def filled_form(api, session, **overrides):
    form = ResultForm(api, session=session, today=TODAY)
    values = {
        "class": "c1",
        "student": "s1",
        "examName": "Midterm",
        "subject": "Math",
        "marks.obtained": "45",
        "marks.total": "50",
    }
    values.update(overrides)
    form.set_many(values)
    return form


class TestMarksRules:
    async def test_obtained_above_total_rejected(self, backend, admin, api):
        form = filled_form(api, admin, **{"marks.obtained": "60", "marks.total": "50"})

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.ok is False
        assert outcome.message == "Obtained marks cannot be greater than total marks"
        assert backend.requests == []

    @pytest.mark.parametrize("obtained, total", [("50", "50"), ("0", "50")])
    async def test_boundary_marks_accepted(self, backend, admin, api, obtained, total):
        """Full marks and zero are both valid"""
        backend.on("POST", "results", data={"_id": "r1"})
        form = filled_form(api, admin, **{"marks.obtained": obtained, "marks.total": total})

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.ok is True
        body = backend.calls("POST", "results")[0].json
        assert body["marks"] == {"obtained": int(obtained), "total": int(total)}

    async def test_non_numeric_marks_rejected(self, backend, admin, api):
        form = filled_form(api, admin, **{"marks.obtained": "abc"})

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.message == "Marks must be numbers"
        assert backend.requests == []

    async def test_missing_marks_rejected(self, backend, admin, api):
        form = filled_form(api, admin, **{"marks.total": ""})

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.message == "Please enter both obtained and total marks"
        assert backend.requests == []

    async def test_missing_student_rejected(self, backend, admin, api):
        form = filled_form(api, admin, student="")

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.message == "Please select a student"

    async def test_missing_class_rejected(self, backend, admin, api):
        form = filled_form(api, admin, **{"class": ""})

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.ok is False
        assert outcome.message == "Please select a class"
        assert backend.calls("POST", "results") == []


class TestPayload:
    async def test_create_payload(self, backend, admin, api):
        """Numeric marks, blank optional fields omitted"""
        backend.on("POST", "results", data={"_id": "r1"})
        form = filled_form(api, admin)

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.ok is True
        assert outcome.message == "Result created successfully"
        assert outcome.redirect == "/results"
        body = backend.calls("POST", "results")[0].json
        assert body["marks"] == {"obtained": 45, "total": 50}
        assert isinstance(body["marks"]["obtained"], int)
        assert body["institution"] == INSTITUTION_ID
        assert body["class"] == "c1"
        assert body["student"] == "s1"
        assert body["academicYear"] == "2024-2025"
        assert body["examDate"] == "2024-05-01"
        assert body["status"] == "draft"
        for omitted in ("section", "group", "remarks", "teacherRemarks"):
            assert omitted not in body

    async def test_backend_failure_uses_fallback(self, backend, admin, api):
        backend.on("POST", "results", status=500)
        form = filled_form(api, admin)

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.ok is False
        assert outcome.message == "Failed to create result"

    async def test_edit_loads_ids_from_populated_record(self, backend, admin, api):
        backend.on("GET", "results/r1", data={
            "_id": "r1", "examName": "Final", "subject": "Physics",
            "institution": {"_id": INSTITUTION_ID, "name": "North"},
            "class": {"_id": "c1", "name": "Grade 9"},
            "student": {"_id": "s1"},
            "marks": {"obtained": 30, "total": 40},
            "examDate": "2024-03-10T00:00:00.000Z",
            "status": "published",
        })
        backend.on("GET", "classes", data=[])
        backend.on("GET", "sections", data=[])
        backend.on("GET", "admissions", data=[])
        form = ResultForm(api, session=admin, record_id="r1", today=TODAY)

        await form.load_existing(api)

        assert form.get("class") == "c1"
        assert form.get("student") == "s1"
        assert form.get("marks.obtained") == 30
        assert form.get("examDate") == "2024-03-10"
        assert form.success_message == "Result updated successfully"


class TestCascade:
    async def test_changing_class_clears_section_and_student(self, admin, api):
        form = filled_form(api, admin, section="sec-1")

        cleared = form.set("class", "c2")

        assert sorted(cleared) == ["section", "student"]
        assert form.get("section") == ""
        assert form.get("student") == ""

    async def test_changing_institution_clears_everything_below(self, super_admin, api):
        form = filled_form(api, super_admin, institution=INSTITUTION_ID)
        form.set_many({"class": "c1", "section": "sec-1", "student": "s1"})

        cleared = form.set("institution", OTHER_INSTITUTION_ID)

        assert sorted(cleared) == ["class", "section", "student"]
        assert form.state == CascadeState.INSTITUTION_SELECTED

    async def test_admin_cannot_change_institution(self, admin, api):
        form = ResultForm(api, session=admin, today=TODAY)

        with pytest.raises(ForbiddenError):
            form.set("institution", OTHER_INSTITUTION_ID)

    async def test_students_loaded_from_enrolled_admissions(self, backend, admin, api):
        backend.on("GET", "classes", data=[{"_id": "c1", "name": "Grade 9"}])
        backend.on("GET", "sections", data=[])
        backend.on("GET", "admissions", data=[
            {"_id": "a1", "class": "c1", "studentId": {"_id": "s1", "user": {"name": "Ali"}}},
            {"_id": "a2", "class": {"_id": "c2"}, "studentId": {"_id": "s2"}},
            {"_id": "a3", "class": "c1", "studentId": "s1"},
        ])
        form = ResultForm(api, session=admin, today=TODAY)

        await form.choose("class", "c1")

        assert [s["_id"] for s in form.options("students")] == ["s1"]
        assert backend.calls("GET", "admissions")[0].params == {
            "status": "enrolled", "institution": INSTITUTION_ID,
        }

    async def test_failed_option_load_sets_error(self, backend, admin, api):
        backend.on("GET", "classes", status=500)
        form = ResultForm(api, session=admin, today=TODAY)

        await form.sync()

        assert form.options("classes") == []
        assert form.selector.errors["classes"] == "Failed to fetch classes"


class TestHelpers:
    def test_default_academic_year(self):
        assert default_academic_year(date(2025, 1, 15)) == "2025-2026"

    def test_students_fall_back_to_personal_info(self):
        admissions = [{"class": "c1", "studentId": "s9", "personalInfo": {"name": "Sara"},
                       "applicationNumber": "APP-9"}]

        students = students_from_admissions(admissions, "c1")

        assert students == [{"_id": "s9", "name": "Sara", "enrollmentNumber": "APP-9"}]
