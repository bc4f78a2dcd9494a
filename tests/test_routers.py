"""
HTTP tests for the portal routers: authentication, role gating and the
main roster flows end to end.
"""

import re
from html import unescape

import pytest

from portal.models import Institute, Team, UserProfile, UserRole


# ========== Auth ==========

class TestAuthRoutes:

    async def test_register_login_and_me(self, client):
        registered = await client.post("/auth/register", json={
            "name": "Student", "email": "student@example.com", "password": "password123"
        })
        assert registered.json()["success"] is True

        login = await client.post("/auth/login", json={"email": "student@example.com", "password": "password123"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "student@example.com"
        assert me.json()["role"] == UserRole.MEMBER.value

    async def test_wrong_password(self, client, make_user):
        await make_user(email="user@example.com")

        response = await client.post("/auth/login", json={"email": "user@example.com", "password": "wrong-pass"})

        assert response.status_code == 401

    async def test_pending_spoc_cannot_log_in(self, client, make_user, identity):
        await make_user(role=UserRole.ADMIN)
        await client.post("/auth/register-spoc", json={
            "name": "Dr. Patel", "email": "patel@example.com", "institute": "MSU Baroda",
            "contact_number": "9000000002", "password": "password123"
        })

        response = await client.post("/auth/login", json={"email": "patel@example.com", "password": "password123"})

        assert response.status_code == 401

    async def test_me_requires_token(self, client):
        response = await client.get("/auth/me")

        assert response.status_code == 401


# ========== Teams ==========

class TestTeamRoutes:

    async def test_create_team_and_fetch_it(self, client, make_user, auth_headers):
        leader = await make_user()
        headers = auth_headers(leader)

        created = await client.post("/teams/create", headers=headers, json={
            "name": leader.name,
            "team_name": "Alpha",
            "institute": "Parul University",
            "department": "Computer Engineering",
            "category": "Software"
        })
        assert created.json()["success"] is True

        mine = await client.get("/teams/my", headers=headers)
        assert mine.status_code == 200
        assert mine.json()["name"] == "Alpha"
        assert mine.json()["leader"]["uid"] == leader.uid

    async def test_only_leader_can_invite(self, client, make_user, make_team, auth_headers):
        member = await make_user()
        team = await make_team(await make_user(), [member])

        response = await client.post(
            f"/teams/{team.id}/invite",
            headers=auth_headers(member),
            json={"member_name": "Friend", "member_email": "friend@example.com"}
        )

        assert response.status_code == 403

    async def test_leader_invites_member(self, client, make_user, make_team, auth_headers, fetch, outbox):
        leader = await make_user()
        team = await make_team(leader)

        response = await client.post(
            f"/teams/{team.id}/invite",
            headers=auth_headers(leader),
            json={"member_name": "Friend", "member_email": "friend@example.com"}
        )

        assert response.json()["success"] is True
        assert len((await fetch(Team, team.id)).members) == 1
        assert outbox.recipients() == ["friend@example.com"]

    async def test_invited_member_logs_in_with_emailed_credentials(self, client, make_user, make_team, auth_headers, outbox):
        leader = await make_user()
        team = await make_team(leader)

        invited = await client.post(
            f"/teams/{team.id}/invite",
            headers=auth_headers(leader),
            json={"member_name": "Bob", "member_email": "Bob.Smith@example.com"}
        )
        assert invited.json()["success"] is True
        password = unescape(re.search(r"<strong>Password:</strong> ([^<]+)</p>", outbox.sent[0]["body"]).group(1))

        login = await client.post("/auth/login", json={"email": "Bob.Smith@example.com", "password": password})

        assert login.status_code == 200
        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {login.json()['access_token']}"})
        assert me.json()["email"] == "bob.smith@example.com"

    async def test_invite_link_and_join(self, client, make_user, make_team, auth_headers, fetch):
        leader = await make_user(name="Leader")
        team = await make_team(leader, name="Omega")

        link = (await client.get(f"/teams/{team.id}/invite-link", headers=auth_headers(leader))).json()
        assert link["invite_link"] == f"https://portal.test/join/{link['invite_id']}"

        details = (await client.get(f"/invites/{link['invite_id']}")).json()
        assert details["team_name"] == "Omega"
        assert details["leader_name"] == "Leader"

        joiner = await make_user()
        joined = await client.post(
            f"/invites/{link['invite_id']}/join", headers=auth_headers(joiner), json={"name": "Joiner"}
        )
        assert joined.json()["success"] is True
        assert (await fetch(UserProfile, joiner.uid)).team_id == team.id

    async def test_leader_cannot_leave(self, client, make_user, make_team, auth_headers):
        leader = await make_user()
        await make_team(leader)

        response = await client.post("/teams/leave", headers=auth_headers(leader))

        assert response.status_code == 200
        assert response.json()["success"] is False

    async def test_member_leaves_and_leader_is_emailed(self, client, make_user, make_team, auth_headers, outbox):
        leader = await make_user()
        member = await make_user()
        await make_team(leader, [member])

        response = await client.post("/teams/leave", headers=auth_headers(member))

        assert response.json()["success"] is True
        assert outbox.recipients() == [leader.email]

    async def test_spoc_enrolls_team_in_ssih(self, client, make_user, make_team, auth_headers, fetch):
        spoc = await make_user(role=UserRole.SPOC)
        team = await make_team(await make_user())

        response = await client.post(f"/teams/{team.id}/ssih-enroll", headers=auth_headers(spoc))

        assert response.json()["success"] is True
        assert (await fetch(Team, team.id)).ssih_enrolled is True

    async def test_member_cannot_lock(self, client, make_user, make_team, auth_headers):
        member = await make_user()
        team = await make_team(await make_user(), [member])

        response = await client.post(f"/teams/{team.id}/lock", headers=auth_headers(member), json={"is_locked": True})

        assert response.status_code == 403


# ========== SPOC and admin ==========

class TestAdminRoutes:

    async def test_spoc_deletes_team(self, client, make_user, make_team, auth_headers, fetch):
        spoc = await make_user(role=UserRole.SPOC)
        leader = await make_user()
        team = await make_team(leader, [await make_user()])

        response = await client.post(
            f"/spoc/teams/{team.id}/manage", headers=auth_headers(spoc), json={"action": "delete-team"}
        )

        assert response.json()["success"] is True
        assert await fetch(Team, team.id) is None

    async def test_spoc_sees_own_institute(self, client, make_user, make_team, auth_headers):
        spoc = await make_user(role=UserRole.SPOC, institute="MSU Baroda")
        await make_team(await make_user(institute="MSU Baroda"))
        await make_team(await make_user(institute="Parul University"))

        response = await client.get("/spoc/teams", headers=auth_headers(spoc))

        assert len(response.json()["teams"]) == 1

    async def test_bulk_delete_requires_admin(self, client, make_user, auth_headers):
        spoc = await make_user(role=UserRole.SPOC)

        response = await client.post("/users/bulk-delete", headers=auth_headers(spoc), json={"user_ids": ["x"]})

        assert response.status_code == 403

    async def test_bulk_delete(self, client, make_user, auth_headers):
        admin = await make_user(role=UserRole.ADMIN)
        victim = await make_user()

        response = await client.post(
            "/users/bulk-delete", headers=auth_headers(admin), json={"user_ids": [victim.uid, admin.uid]}
        )

        body = response.json()
        assert body["deleted_users"] == 1
        assert len(body["skipped"]) == 1

    async def test_jury_panel_lifecycle(self, client, make_user, auth_headers):
        admin = await make_user(role=UserRole.ADMIN)
        headers = auth_headers(admin)

        created = (await client.post("/jury/panels", headers=headers, json={
            "panel_name": "Panel Z",
            "is_draft": True,
            "jury_members": [{"name": "Judge", "email": "judge@example.com"}]
        })).json()
        finalized = (await client.post(f"/jury/panels/{created['panel_id']}/finalize", headers=headers)).json()
        panels = (await client.get("/jury/panels", headers=headers)).json()

        assert finalized["success"] is True
        assert panels[0]["status"] == "active"

    async def test_institutes_are_public(self, client, make_user, auth_headers):
        admin = await make_user(role=UserRole.ADMIN)
        await client.post("/institutes/", headers=auth_headers(admin), json={"name": "Parul University"})

        response = await client.get("/institutes/")

        assert [i["name"] for i in response.json()] == ["Parul University"]

    async def test_spoc_sets_institute_dates_and_coordinator(self, client, make_user, auth_headers, fetch):
        admin = await make_user(role=UserRole.ADMIN)
        created = (await client.post(
            "/institutes/", headers=auth_headers(admin), json={"name": "MSU Baroda"}
        )).json()
        spoc = await make_user(role=UserRole.SPOC, institute="MSU Baroda")
        headers = auth_headers(spoc)

        too_few = await client.put(
            f"/institutes/{created['institute_id']}/evaluation-dates", headers=headers, json={"dates": ["2025-09-01"]}
        )
        saved = await client.put(
            f"/institutes/{created['institute_id']}/evaluation-dates",
            headers=headers,
            json={"dates": ["2025-09-01", "2025-09-05"]}
        )
        coordinator = await client.put(
            f"/institutes/{created['institute_id']}/student-coordinator",
            headers=headers,
            json={"student_coordinator_name": "Riya Shah", "student_coordinator_contact": "9000000009"}
        )

        assert too_few.json()["success"] is False
        assert saved.json()["success"] is True
        assert coordinator.json()["success"] is True
        listed = (await client.get("/institutes/")).json()[0]
        assert listed["evaluation_dates"] == ["2025-09-01", "2025-09-05"]
        assert listed["student_coordinator_name"] == "Riya Shah"
        assert (await fetch(Institute, created["institute_id"])).student_coordinator_contact == "9000000009"

    async def test_member_cannot_set_institute_dates(self, client, make_user, auth_headers):
        member = await make_user()

        response = await client.put(
            "/institutes/any/evaluation-dates", headers=auth_headers(member), json={"dates": ["2025-09-01", "2025-09-02"]}
        )

        assert response.status_code == 403
