"""
Tests for portal/utils/institute_utils.py

Coverage targets:
- add_institute / list_institutes
- set_evaluation_dates (two to four dates, SPOC scope)
- set_student_coordinator
"""

import datetime

from portal.models import Institute, UserRole
from portal.utils.institute_utils import (
    add_institute, list_institutes, set_evaluation_dates, set_student_coordinator
)


def dates(count: int):
    return [datetime.date(2025, 9, 1) + datetime.timedelta(days=n) for n in range(count)]


# ========== add / list ==========

class TestInstitutes:

    async def test_add_and_list(self, session):
        assert (await add_institute(session, " Parul University ")).success is True
        duplicate = await add_institute(session, "Parul University")

        assert duplicate.success is False
        assert [i.name for i in await list_institutes(session)] == ["Parul University"]


# ========== evaluation dates ==========

class TestEvaluationDates:

    async def test_spoc_saves_dates(self, session, make_user, fetch):
        created = await add_institute(session, "MSU Baroda")
        spoc = await make_user(role=UserRole.SPOC, institute="MSU Baroda")

        result = await set_evaluation_dates(session, created.institute_id, dates(3), actor=spoc)

        assert result.success is True
        assert result.message == "Evaluation dates have been successfully saved."
        stored = await fetch(Institute, created.institute_id)
        assert stored.evaluation_dates == ["2025-09-01", "2025-09-02", "2025-09-03"]

    async def test_bounds(self, session, fetch):
        created = await add_institute(session, "MSU Baroda")

        for count in (0, 1, 5):
            result = await set_evaluation_dates(session, created.institute_id, dates(count))
            assert result.success is False
            assert result.message == "Please select between two and four dates."

        assert (await set_evaluation_dates(session, created.institute_id, dates(2))).success is True
        assert (await set_evaluation_dates(session, created.institute_id, dates(4))).success is True
        assert len((await fetch(Institute, created.institute_id)).evaluation_dates) == 4

    async def test_other_institute_spoc_is_refused(self, session, make_user, fetch):
        created = await add_institute(session, "MSU Baroda")
        spoc = await make_user(role=UserRole.SPOC, institute="Parul University")

        result = await set_evaluation_dates(session, created.institute_id, dates(2), actor=spoc)

        assert result.success is False
        assert (await fetch(Institute, created.institute_id)).evaluation_dates == []

    async def test_unknown_institute(self, session):
        result = await set_evaluation_dates(session, "missing", dates(2))

        assert result.success is False
        assert result.message == "Institute not found."


# ========== student coordinator ==========

class TestStudentCoordinator:

    async def test_saves_details(self, session, make_user, fetch):
        created = await add_institute(session, "MSU Baroda")
        spoc = await make_user(role=UserRole.SPOC, institute="MSU Baroda")

        result = await set_student_coordinator(session, created.institute_id, "Riya Shah", "9000000009", actor=spoc)

        assert result.success is True
        stored = await fetch(Institute, created.institute_id)
        assert stored.student_coordinator_name == "Riya Shah"
        assert stored.student_coordinator_contact == "9000000009"

    async def test_other_institute_spoc_is_refused(self, session, make_user):
        created = await add_institute(session, "MSU Baroda")
        spoc = await make_user(role=UserRole.SPOC, institute="Parul University")

        result = await set_student_coordinator(session, created.institute_id, "Riya Shah", "9000000009", actor=spoc)

        assert result.success is False
        assert result.message == "You can only manage your own institute."
