"""
Tests for portal/utils/problem_statement_utils.py and portal/utils/announcement_utils.py
"""

from io import BytesIO

import pytest
from openpyxl import Workbook
from sqlalchemy import select

from portal.errors import ValidationError
from portal.models import Announcement, ProblemStatement, Team
from portal.schemas.announcement import CreateAnnouncementRequest
from portal.utils.announcement_utils import create_announcement, list_announcements
from portal.utils.problem_statement_utils import (
    EXPECTED_HEADERS, bulk_upload_problem_statements, list_problem_statements, read_problem_statement_rows,
    select_problem_statement
)


def build_workbook(rows, header=EXPECTED_HEADERS) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(list(header))
    for row in rows:
        sheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


VALID_ROW = ["SIH1501", "Smart Irrigation", "Hardware", "Agriculture", "", "Sensors for fields", "CSE", "Govt"]


# ========== Reading xlsx ==========

class TestReadRows:

    def test_reads_header_and_rows(self):
        header, rows = read_problem_statement_rows(build_workbook([VALID_ROW]))

        assert header == EXPECTED_HEADERS
        assert rows[0][:4] == ["SIH1501", "Smart Irrigation", "Hardware", "Agriculture"]

    def test_hyperlink_target_is_used(self):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(EXPECTED_HEADERS)
        sheet.append(VALID_ROW)
        sheet["E2"] = "Dataset"
        sheet["E2"].hyperlink = "https://data.example.com/set.csv"
        buffer = BytesIO()
        workbook.save(buffer)

        _, rows = read_problem_statement_rows(buffer.getvalue())

        assert rows[0][4] == "https://data.example.com/set.csv"

    def test_not_an_excel_file(self):
        with pytest.raises(ValidationError):
            read_problem_statement_rows(b"plain text")


# ========== Bulk upload ==========

class TestBulkUpload:

    async def test_adds_valid_rows_and_reports_errors(self, session):
        header, rows = read_problem_statement_rows(build_workbook([
            VALID_ROW,
            ["SIH1502", "", "Software", "Health"],
            ["SIH1503", "Drone Mapping", "Aerospace", "Transport"],
            ["SIH1504", "Crowd Counting", "Hardware & Software", "Security"],
        ]))

        result = await bulk_upload_problem_statements(session, header, rows)

        assert result.success is True
        assert result.added_count == 2
        assert result.failed_count == 2
        assert result.errors[0].startswith("Row 3: Missing mandatory fields")
        assert result.errors[1].startswith('Row 4: Invalid category "Aerospace"')
        stored = await list_problem_statements(session)
        assert [ps.problem_statement_id for ps in stored] == ["SIH1501", "SIH1504"]
        assert stored[0].organization == "Govt"

    async def test_header_mismatch(self, session):
        result = await bulk_upload_problem_statements(session, ["Id", "Title"], [VALID_ROW])

        assert result.success is False
        assert result.message == "Excel file headers do not match the expected format."
        assert (await session.execute(select(ProblemStatement))).scalars().all() == []

    async def test_more_rows_than_one_batch(self, session):
        rows = [[f"SIH{n}", f"Title {n}", "Software", "Misc"] for n in range(450)]

        result = await bulk_upload_problem_statements(session, EXPECTED_HEADERS, rows)

        assert result.added_count == 450
        assert len(await list_problem_statements(session)) == 450

    async def test_leader_selects_statement(self, session, make_user, make_team, fetch):
        await bulk_upload_problem_statements(session, EXPECTED_HEADERS, [VALID_ROW])
        statement = (await list_problem_statements(session))[0]
        leader = await make_user()
        team = await make_team(leader)

        result = await select_problem_statement(session, team.id, leader.uid, statement.id)

        assert result.success is True
        stored = await fetch(Team, team.id)
        assert stored.problem_statement_id == statement.id
        assert stored.problem_statement_title == "Smart Irrigation"


# ========== Announcements ==========

class TestAnnouncements:

    async def test_nominated_team_leaders_are_emailed(self, session, make_user, make_team, outbox):
        nominated_leader = await make_user()
        await make_team(nominated_leader, is_nominated=True)
        await make_team(await make_user())

        result = await create_announcement(session, CreateAnnouncementRequest(
            title="Finals", content="Report at 9 AM", audience="nominated_teams"
        ), author_name="Admin")

        assert result.success is True
        assert result.message.endswith("Emailing 1 nominated team leader(s).")
        assert outbox.recipients() == [nominated_leader.email]

    async def test_no_nominated_teams(self, session, outbox):
        result = await create_announcement(session, CreateAnnouncementRequest(
            title="Finals", content="Report at 9 AM", audience="nominated_teams"
        ))

        assert result.message.endswith("No nominated teams found to notify.")
        assert outbox.sent == []

    async def test_email_failure_keeps_announcement(self, session, make_user, make_team, outbox):
        await make_team(await make_user(), is_nominated=True)
        outbox.configured = False

        result = await create_announcement(session, CreateAnnouncementRequest(
            title="Finals", content="Report at 9 AM", audience="nominated_teams"
        ))

        assert result.success is True
        assert len((await session.execute(select(Announcement))).scalars().all()) == 1

    async def test_audience_filter(self, session):
        await create_announcement(session, CreateAnnouncementRequest(title="All", content="x"))
        await create_announcement(session, CreateAnnouncementRequest(title="Spoc", content="x", audience="spoc"))

        visible = await list_announcements(session, ["all", "teams"])

        assert [a.title for a in visible] == ["All"]
