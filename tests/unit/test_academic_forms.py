"""
Unit Tests for Institution, Department, Class, Section and Group Forms
"""
import pytest

from sgcadmin.exceptions import ForbiddenError, LocalValidationError
from sgcadmin.forms.academics import (
    INSTITUTION_MISSING,
    ClassForm,
    DepartmentForm,
    GroupForm,
    SectionForm,
    generate_code,
)
from sgcadmin.forms.base import REQUIRED_MESSAGE
from sgcadmin.forms.institutions import InstitutionForm
from sgcadmin.mutations import MutationExecutor
from tests.conftest import INSTITUTION_ID, OTHER_INSTITUTION_ID


class TestGenerateCode:
    @pytest.mark.parametrize("name, code", [
        ("Science Club 2", "SCIENCE-CLUB"),
        ("  arts  ", "ARTS"),
        ("A & B", "A-B"),
        ("", ""),
    ])
    def test_generate_code(self, name, code):
        assert generate_code(name) == code


class TestInstitutionScope:
    async def test_missing_institution_rejected_locally(self, backend, session, api):
        form = ClassForm(api, session=session)
        form.set("name", "Grade 9")

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.message == INSTITUTION_MISSING
        assert backend.requests == []

    async def test_class_takes_session_institution(self, backend, admin, api):
        backend.on("POST", "classes", data={"_id": "c1"})
        form = ClassForm(api, session=admin)
        form.set_many({"name": "Grade 9", "code": "G9", "academicYear": ""})

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.ok is True
        assert outcome.message == "Class created successfully!"
        body = backend.calls("POST", "classes")[0].json
        assert body["institution"] == INSTITUTION_ID
        assert body["academicYear"]
        assert "department" not in body


class TestSectionForm:
    async def test_strength_sent_as_capacity(self, backend, admin, api):
        backend.on("POST", "sections", data={"_id": "s1"})
        form = SectionForm(api, session=admin)
        form.set_many({"name": "A", "class": "c1", "strength": "40"})

        await form.submit(MutationExecutor(api))

        body = backend.calls("POST", "sections")[0].json
        assert body["capacity"] == 40
        assert "strength" not in body
        assert body["isActive"] is True

    async def test_class_is_required(self, admin, api):
        form = SectionForm(api, session=admin)
        form.set("name", "A")

        with pytest.raises(LocalValidationError):
            form.validate()

    async def test_choosing_class_adopts_department(self, backend, admin, api):
        backend.on("GET", "classes", data=[{"_id": "c1", "name": "Grade 9", "department": {"_id": "d7"}}])
        form = SectionForm(api, session=admin)
        await form.sync()

        await form.choose("class", "c1")

        assert form.get("department") == "d7"


class TestGroupForm:
    async def test_defaults_filled_on_submit(self, backend, admin, api):
        backend.on("GET", "departments", data=[{"_id": "d1", "name": "Science"}])
        backend.on("GET", "classes", data=[])
        backend.on("POST", "groups", data={"_id": "g1"})
        form = GroupForm(api, session=admin)
        await form.sync()
        form.set_many({"name": "Science Club", "type": "", "capacity": ""})

        await form.submit(MutationExecutor(api))

        body = backend.calls("POST", "groups")[0].json
        assert body["code"] == "SCIENCE-CLUB"
        assert body["type"] == "Study"
        assert body["capacity"] == 10
        assert body["department"] == "d1"


class TestInstitutionForm:
    def test_admin_cannot_open(self, admin, api):
        with pytest.raises(ForbiddenError):
            InstitutionForm(session=admin, api=api)

    async def test_code_uppercased_and_address_nested(self, backend, super_admin, api):
        backend.on("POST", "institutions", data={"_id": "i9"})
        form = InstitutionForm(session=super_admin, api=api)
        form.set_many({"name": "North Grammar", "code": "ngs", "address.city": "Lahore"})

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.ok is True
        body = backend.calls("POST", "institutions")[0].json
        assert body["code"] == "NGS"
        assert body["address"]["city"] == "Lahore"
        assert body["address"]["country"] == "Pakistan"
        assert body["type"] == "school"


class TestDepartmentForm:
    async def test_create_uses_session_institution(self, backend, admin, api):
        backend.on("POST", "departments", data={"_id": "d1"})
        form = DepartmentForm(api, session=admin)
        form.set_many({"name": "Science", "code": "SCI", "head.name": "Dr. Rana", "building": ""})

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.ok is True
        assert outcome.message == "Department created successfully!"
        assert outcome.redirect == "/departments"
        body = backend.calls("POST", "departments")[0].json
        assert body == {
            "name": "Science",
            "code": "SCI",
            "institution": INSTITUTION_ID,
            "head": {"name": "Dr. Rana"},
        }

    async def test_code_is_required(self, backend, admin, api):
        form = DepartmentForm(api, session=admin)
        form.set("name", "Science")

        outcome = await form.submit(MutationExecutor(api))

        assert outcome.message == REQUIRED_MESSAGE
        assert backend.requests == []

    async def test_admin_institution_is_locked(self, admin, api):
        form = DepartmentForm(api, session=admin)

        with pytest.raises(ForbiddenError):
            form.set("institution", OTHER_INSTITUTION_ID)

    async def test_edit_loads_populated_record(self, backend, super_admin, api):
        backend.on("GET", "departments/d1", data={
            "_id": "d1", "name": "Arts", "code": "ART",
            "institution": {"_id": OTHER_INSTITUTION_ID, "name": "South"},
            "head": {"name": "Ms. Iqbal", "email": "iqbal@school.pk"},
        })
        backend.on("GET", "institutions", data=[{"_id": OTHER_INSTITUTION_ID, "name": "South"}])
        backend.on("PUT", "departments/d1", data={"_id": "d1"})
        form = DepartmentForm(api, session=super_admin, record_id="d1")

        await form.load_existing(api)
        form.set("code", "ARTS")
        outcome = await form.submit(MutationExecutor(api))

        assert outcome.message == "Department updated successfully!"
        body = backend.calls("PUT", "departments/d1")[0].json
        assert body["institution"] == OTHER_INSTITUTION_ID
        assert body["head"] == {"name": "Ms. Iqbal", "email": "iqbal@school.pk"}
        assert body["code"] == "ARTS"
        assert [i["_id"] for i in form.options("institutions")] == [OTHER_INSTITUTION_ID]
