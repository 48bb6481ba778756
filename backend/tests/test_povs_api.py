# tests/test_povs_api.py
from __future__ import annotations

import pytest

from povhub.auth.defaults import seed_default_permissions
from povhub.auth.permissions import ResourceAction, ResourceType
from povhub.auth.store import SqlPermissionStore
from povhub.core.roles import UserRole

from helpers import auth_headers, create_pov, create_team, create_user, grant


@pytest.mark.asyncio
async def test_create_requires_grant(client, db):
    user = await create_user(db)
    await db.commit()

    r = await client.post("/api/v1/povs", json={"title": "Acme"}, headers=auth_headers(user))
    assert r.status_code == 403, r.text
    assert r.json()["detail"]["reason"] == "PERMISSION_NOT_FOUND"

    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.CREATE)
    await db.commit()

    r = await client.post("/api/v1/povs", json={"title": "Acme"}, headers=auth_headers(user))
    assert r.status_code == 201, r.text
    assert r.json()["owner_id"] == str(user.id)
    assert r.json()["status"] == "PROJECTION"


@pytest.mark.asyncio
async def test_view_is_narrowed_to_owner_and_team(client, db):
    owner = await create_user(db)
    member = await create_user(db)
    outsider = await create_user(db)
    team = await create_team(db, owner.id, member.id)
    pov = await create_pov(db, owner, team)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.VIEW)
    await db.commit()

    url = f"/api/v1/povs/{pov.id}"
    assert (await client.get(url, headers=auth_headers(owner))).status_code == 200
    assert (await client.get(url, headers=auth_headers(member))).status_code == 200

    r = await client.get(url, headers=auth_headers(outsider))
    assert r.status_code == 403, r.text
    assert r.json()["detail"]["reason"] == "NOT_OWNER_OR_MEMBER"


@pytest.mark.asyncio
async def test_list_only_returns_accessible_povs(client, db):
    alice = await create_user(db)
    bob = await create_user(db)
    admin = await create_user(db, role=UserRole.ADMIN)
    mine = await create_pov(db, alice, title="Mine")
    team = await create_team(db, bob.id, alice.id)
    shared = await create_pov(db, bob, team, title="Shared")
    await create_pov(db, bob, title="Bob only")
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.VIEW)
    await grant(db, UserRole.ADMIN, ResourceType.POV, ResourceAction.VIEW)
    await db.commit()

    r = await client.get("/api/v1/povs", headers=auth_headers(alice))
    assert r.status_code == 200, r.text
    assert {p["id"] for p in r.json()} == {str(mine.id), str(shared.id)}

    r = await client.get("/api/v1/povs", headers=auth_headers(admin))
    assert len(r.json()) == 3


@pytest.mark.asyncio
async def test_missing_pov_is_404(client, db):
    root = await create_user(db, role=UserRole.SUPER_ADMIN)
    await db.commit()

    r = await client.get("/api/v1/povs/00000000-0000-0000-0000-000000000000", headers=auth_headers(root))
    assert r.status_code == 404, r.text
    assert r.json()["detail"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_update_and_delete_with_default_grants(client, db):
    owner = await create_user(db)
    outsider = await create_user(db)
    pov = await create_pov(db, owner)
    await db.commit()
    await seed_default_permissions(SqlPermissionStore(db))

    url = f"/api/v1/povs/{pov.id}"

    r = await client.patch(url, json={"title": "Renamed"}, headers=auth_headers(outsider))
    assert r.status_code == 403, r.text

    r = await client.patch(url, json={"title": "Renamed"}, headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    assert r.json()["title"] == "Renamed"

    assert (await client.delete(url, headers=auth_headers(outsider))).status_code == 403
    assert (await client.delete(url, headers=auth_headers(owner))).status_code == 204
    assert (await client.get(url, headers=auth_headers(owner))).status_code == 404


@pytest.mark.asyncio
async def test_workflow_approval_requires_approve_grant(client, db):
    owner = await create_user(db)
    pov = await create_pov(db, owner)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.EDIT)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.REJECT)
    await db.commit()

    headers = auth_headers(owner)
    r = await client.post(f"/api/v1/povs/{pov.id}/workflows", json={}, headers=headers)
    assert r.status_code == 201, r.text
    wf = r.json()
    assert wf["type"] == "PHASE_APPROVAL"
    assert wf["status"] == "PENDING"

    url = f"/api/v1/povs/{pov.id}/workflows/{wf['id']}"
    r = await client.patch(url, json={"status": "COMPLETED"}, headers=headers)
    assert r.status_code == 403, r.text

    r = await client.patch(url, json={"status": "REJECTED"}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "REJECTED"


@pytest.mark.asyncio
async def test_null_title_is_rejected_without_touching_the_row(client, db):
    owner = await create_user(db)
    pov = await create_pov(db, owner, title="Keep me")
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.EDIT)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.VIEW)
    await db.commit()

    url = f"/api/v1/povs/{pov.id}"
    r = await client.patch(url, json={"title": None}, headers=auth_headers(owner))
    assert r.status_code == 422, r.text

    r = await client.patch(url, json={"description": None}, headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    assert r.json()["title"] == "Keep me"


@pytest.mark.asyncio
async def test_finished_workflow_cannot_be_reopened(client, db):
    owner = await create_user(db)
    pov = await create_pov(db, owner)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.VIEW)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.EDIT)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.APPROVE)
    await db.commit()

    headers = auth_headers(owner)
    wf = (await client.post(f"/api/v1/povs/{pov.id}/workflows", json={}, headers=headers)).json()
    url = f"/api/v1/povs/{pov.id}/workflows/{wf['id']}"

    r = await client.patch(url, json={"status": "IN_PROGRESS"}, headers=headers)
    assert r.status_code == 200, r.text
    r = await client.patch(url, json={"status": "COMPLETED"}, headers=headers)
    assert r.status_code == 200, r.text

    for target in ("PENDING", "IN_PROGRESS"):
        r = await client.patch(url, json={"status": target}, headers=headers)
        assert r.status_code == 409, r.text
        assert r.json()["detail"]["code"] == "CONFLICT"

    r = await client.get(f"/api/v1/povs/{pov.id}/workflows", headers=headers)
    assert r.json()[0]["status"] == "COMPLETED"
