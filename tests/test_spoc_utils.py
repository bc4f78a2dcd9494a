"""
Tests for portal/utils/spoc_utils.py

Coverage targets:
- manage_team_by_spoc (remove-member, delete-team, validation, institute gating)
- get_institute_teams
- SPOC provisioning: create_spoc, register_spoc, manage_spoc_request
"""

import pytest
from sqlalchemy import select

from portal.models import SpocStatus, Team, TeamInvite, UserProfile, UserRole
from portal.schemas.user import CreateSpocInput, RegisterSpocInput
from portal.utils.spoc_utils import (
    create_spoc, get_institute_teams, manage_spoc_request, manage_team_by_spoc, register_spoc
)
from portal.utils.team_utils import get_team_invite_link


# ========== remove-member ==========

class TestRemoveMember:

    async def test_removes_snapshot_and_clears_profile(self, session, make_user, make_team, fetch):
        leader = await make_user()
        keep = await make_user()
        drop = await make_user(email="drop@example.com")
        team = await make_team(leader, [keep, drop])

        result = await manage_team_by_spoc(session, team.id, "remove-member", member_email="drop@example.com")

        assert result.success is True
        stored = await fetch(Team, team.id)
        assert [m["email"] for m in stored.members] == [keep.email]
        assert (await fetch(UserProfile, drop.uid)).team_id is None
        assert (await fetch(UserProfile, keep.uid)).team_id == team.id

    async def test_email_required(self, session, make_user, make_team):
        team = await make_team(await make_user())

        result = await manage_team_by_spoc(session, team.id, "remove-member")

        assert result.success is False
        assert result.message == "Member email is required to remove a member."

    async def test_member_not_on_roster(self, session, make_user, make_team):
        team = await make_team(await make_user(), [await make_user()])

        result = await manage_team_by_spoc(session, team.id, "remove-member", member_email="stranger@example.com")

        assert result.success is False
        assert result.message == "Member not found in this team."


# ========== delete-team ==========

class TestDeleteTeam:

    async def test_clears_every_profile_and_deletes_team(self, session, make_user, make_team, fetch):
        """Delete a team of leader L with members M1 and M2"""
        leader = await make_user(name="L")
        m1 = await make_user(name="M1")
        m2 = await make_user(name="M2")
        team = await make_team(leader, [m1, m2])
        await get_team_invite_link(session, team.id, "https://portal.test")

        result = await manage_team_by_spoc(session, team.id, "delete-team")

        assert result.success is True
        assert await fetch(Team, team.id) is None
        for user in (leader, m1, m2):
            profile = await fetch(UserProfile, user.uid)
            assert profile.team_id is None
            assert profile.role == UserRole.MEMBER.value

        invites = (await session.execute(select(TeamInvite))).scalars().all()
        assert invites == []

    async def test_clears_profiles_missing_from_roster(self, session, make_user, make_team, fetch):
        leader = await make_user()
        team = await make_team(leader)
        stray = await make_user(team_id=team.id)

        result = await manage_team_by_spoc(session, team.id, "delete-team")

        assert result.success is True
        assert (await fetch(UserProfile, stray.uid)).team_id is None

    async def test_unknown_team(self, session):
        result = await manage_team_by_spoc(session, "missing", "delete-team")

        assert result.success is False
        assert result.message == "Team with ID missing not found."


class TestManageTeamValidation:

    async def test_invalid_action(self, session, make_user, make_team, fetch):
        team = await make_team(await make_user())

        result = await manage_team_by_spoc(session, team.id, "archive-team")

        assert result.success is False
        assert result.message == "Invalid action specified."
        assert await fetch(Team, team.id) is not None

    async def test_spoc_of_own_institute(self, session, make_user, make_team):
        team = await make_team(await make_user(institute="Parul University"))
        spoc = await make_user(role=UserRole.SPOC, institute="Parul University")

        result = await manage_team_by_spoc(session, team.id, "delete-team", actor=spoc)

        assert result.success is True

    async def test_spoc_of_other_institute(self, session, make_user, make_team, fetch):
        team = await make_team(await make_user(institute="Parul University"))
        spoc = await make_user(role=UserRole.SPOC, institute="MSU Baroda")

        result = await manage_team_by_spoc(session, team.id, "delete-team", actor=spoc)

        assert result.success is False
        assert await fetch(Team, team.id) is not None


# ========== get_institute_teams ==========

class TestInstituteTeams:

    async def test_returns_teams_and_profiles(self, session, make_user, make_team):
        leader = await make_user(institute="Parul University")
        member = await make_user(institute="Parul University")
        team = await make_team(leader, [member])
        await make_team(await make_user(institute="MSU Baroda"))

        result = await get_institute_teams(session, "Parul University")

        assert result.success is True
        assert [t.id for t in result.teams] == [team.id]
        assert set(result.users) == {leader.uid, member.uid}
        assert result.users[member.uid].email == member.email

    async def test_many_profiles_are_chunked(self, session, make_user, make_team):
        teams = []
        for _ in range(7):
            teams.append(await make_team(await make_user(), [await make_user() for _ in range(5)]))

        result = await get_institute_teams(session, "Parul University")

        assert len(result.teams) == 7
        assert len(result.users) == 42


# ========== SPOC provisioning ==========

class TestCreateSpoc:

    data = CreateSpocInput(
        name="Prof. Shah", email="shah@example.com", institute="Parul University", contact_number="9000000001"
    )

    async def test_creates_approved_spoc(self, session, identity, fetch, outbox):
        result = await create_spoc(session, identity, self.data)

        assert result.success is True
        profile = await fetch(UserProfile, result.uid)
        assert profile.role == UserRole.SPOC.value
        assert profile.spoc_status == SpocStatus.APPROVED.value
        assert outbox.recipients() == ["shah@example.com"]

    async def test_email_is_primary_deliverable(self, session, identity, outbox):
        outbox.configured = False

        result = await create_spoc(session, identity, self.data)

        assert result.success is False
        assert "SMTP_USER" in result.message

    async def test_duplicate_email(self, session, identity, make_user):
        await make_user(email="shah@example.com")

        result = await create_spoc(session, identity, self.data)

        assert result.success is False
        assert result.message == 'A user with email "shah@example.com" already exists.'


class TestSpocRequests:

    data = RegisterSpocInput(
        name="Dr. Patel", email="patel@example.com", institute="MSU Baroda",
        contact_number="9000000002", password="password123"
    )

    async def test_register_notifies_admins_and_disables_account(self, session, identity, make_user, fetch, outbox):
        admin = await make_user(role=UserRole.ADMIN)

        result = await register_spoc(session, identity, self.data)

        assert result.success is True
        profile = await fetch(UserProfile, result.uid)
        assert profile.spoc_status == SpocStatus.PENDING.value
        assert (await identity.get_account(result.uid)).disabled is True
        assert await identity.authenticate("patel@example.com", "password123") is None
        assert outbox.recipients() == [admin.email]

    async def test_approve(self, session, identity, make_user, fetch):
        await make_user(role=UserRole.ADMIN)
        registered = await register_spoc(session, identity, self.data)

        result = await manage_spoc_request(session, identity, registered.uid, "approve")

        assert result.success is True
        assert (await fetch(UserProfile, registered.uid)).spoc_status == SpocStatus.APPROVED.value
        assert await identity.authenticate("patel@example.com", "password123") is not None

    async def test_reject(self, session, identity, make_user, fetch):
        await make_user(role=UserRole.ADMIN)
        registered = await register_spoc(session, identity, self.data)

        result = await manage_spoc_request(session, identity, registered.uid, "reject")

        assert result.success is True
        assert await fetch(UserProfile, registered.uid) is None
        assert await identity.get_account(registered.uid) is None

    async def test_invalid_action(self, session, identity, make_user):
        await make_user(role=UserRole.ADMIN)
        registered = await register_spoc(session, identity, self.data)

        result = await manage_spoc_request(session, identity, registered.uid, "maybe")

        assert result.success is False
        assert result.message == "Invalid action specified."

    async def test_only_pending_requests(self, session, identity, make_user):
        spoc = await make_user(role=UserRole.SPOC, spoc_status=SpocStatus.APPROVED.value)

        result = await manage_spoc_request(session, identity, spoc.uid, "approve")

        assert result.success is False
