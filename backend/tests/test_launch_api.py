# tests/test_launch_api.py
from __future__ import annotations

import pytest

from povhub.auth.permissions import ResourceAction, ResourceType
from povhub.core.roles import UserRole

from helpers import auth_headers, create_pov, create_user, grant


async def owner_with_launch_grants(db, approve: bool = True):
    owner = await create_user(db)
    pov = await create_pov(db, owner)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.VIEW)
    await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.EDIT)
    if approve:
        await grant(db, UserRole.USER, ResourceType.POV, ResourceAction.APPROVE)
    await db.commit()
    return owner, pov


@pytest.mark.asyncio
async def test_full_launch_flow(client, db):
    owner, pov = await owner_with_launch_grants(db)
    headers = auth_headers(owner)
    base = f"/api/v1/povs/{pov.id}/launch"

    r = await client.get(base, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "NOT_INITIATED"

    r = await client.post(base, headers=headers)
    assert r.status_code == 201, r.text
    launch = r.json()
    assert launch["confirmed"] is False

    r = await client.get(f"{base}/validation", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["valid"] is False
    assert len(r.json()["errors"]) == 5

    updates = [{"key": item["key"], "completed": True} for item in launch["checklist"]]
    r = await client.put(f"{base}/checklist", json=updates, headers=headers)
    assert r.status_code == 200, r.text
    assert all(item["completed"] for item in r.json()["checklist"])

    r = await client.get(f"{base}/validation", headers=headers)
    assert r.json() == {"valid": True, "errors": []}

    r = await client.post(f"{base}/confirm", json={"launch_id": launch["id"]}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["confirmed"] is True
    assert r.json()["launched_by"] == str(owner.id)

    r = await client.get(base, headers=headers)
    assert r.json()["status"] == "LAUNCHED"
    assert r.json()["progress"] == {"completed": 5, "total": 5}

    r = await client.post(f"{base}/confirm", json={"launch_id": launch["id"]}, headers=headers)
    assert r.status_code == 409, r.text
    assert r.json()["detail"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_confirm_incomplete_launch_lists_errors(client, db):
    owner, pov = await owner_with_launch_grants(db)
    headers = auth_headers(owner)
    base = f"/api/v1/povs/{pov.id}/launch"

    launch = (await client.post(base, headers=headers)).json()
    await client.put(f"{base}/checklist", json=[{"key": "teamConfirmed", "completed": True}], headers=headers)

    r = await client.post(f"{base}/confirm", json={"launch_id": launch["id"]}, headers=headers)
    assert r.status_code == 400, r.text
    detail = r.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert detail["errors"] == [
        'Checklist item "All phases reviewed" not completed',
        'Checklist item "Budget approved" not completed',
        'Checklist item "Resources allocated" not completed',
        'Checklist item "Details confirmed" not completed',
    ]

    r = await client.get(base, headers=headers)
    assert r.json()["status"] == "IN_PROGRESS"


@pytest.mark.asyncio
async def test_confirm_without_approve_grant_is_403(client, db):
    owner, pov = await owner_with_launch_grants(db, approve=False)
    headers = auth_headers(owner)
    base = f"/api/v1/povs/{pov.id}/launch"

    launch = (await client.post(base, headers=headers)).json()
    updates = [{"key": item["key"], "completed": True} for item in launch["checklist"]]
    await client.put(f"{base}/checklist", json=updates, headers=headers)

    r = await client.post(f"{base}/confirm", json={"launch_id": launch["id"]}, headers=headers)
    assert r.status_code == 403, r.text

    r = await client.get(base, headers=headers)
    assert r.json()["status"] == "IN_PROGRESS"


@pytest.mark.asyncio
async def test_outsider_cannot_touch_launch(client, db):
    owner, pov = await owner_with_launch_grants(db)
    outsider = await create_user(db)
    await db.commit()
    base = f"/api/v1/povs/{pov.id}/launch"

    r = await client.post(base, headers=auth_headers(outsider))
    assert r.status_code == 403, r.text
    assert r.json()["detail"]["reason"] == "NOT_OWNER_OR_MEMBER"

    r = await client.get(f"{base}/validation", headers=auth_headers(outsider))
    assert r.status_code == 403, r.text


@pytest.mark.asyncio
async def test_checklist_without_launch_is_404(client, db):
    owner, pov = await owner_with_launch_grants(db)

    r = await client.put(
        f"/api/v1/povs/{pov.id}/launch/checklist",
        json=[{"key": "teamConfirmed", "completed": True}],
        headers=auth_headers(owner),
    )
    assert r.status_code == 404, r.text
