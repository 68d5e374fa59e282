"""Tests for the batch distribution endpoint."""

import uuid

import pytest
from sqlalchemy import func, select

from app.models.lead import Lead
from conftest import auth_headers


async def _import(client, manager, count: int) -> str:
    rows = [{"business_name": f"Biz {i}", "phone_number": f"0555 000 {i:04d}"} for i in range(count)]
    resp = await client.post(
        "/api/v1/leads/import",
        json={"filename": "dağıtım.csv", "leads": rows},
        headers=auth_headers(manager),
    )
    assert resp.json()["accepted"] == count
    return resp.json()["batch_id"]


@pytest.mark.asyncio
async def test_auto_distribution(client, db, manager, agent, second_agent, third_agent):
    batch_id = await _import(client, manager, 7)

    resp = await client.post(
        f"/api/v1/batches/{batch_id}/distribute",
        json={"mode": "auto", "agent_ids": [str(agent.id), str(second_agent.id), str(third_agent.id)]},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_assigned"] == 7
    assert [a["count"] for a in body["assignments"]] == [3, 2, 2]

    unassigned = (await db.execute(
        select(func.count()).select_from(Lead).where(Lead.assigned_to.is_(None))
    )).scalar()
    assert unassigned == 0


@pytest.mark.asyncio
async def test_manual_mismatch_returns_delta(client, manager, agent, second_agent):
    batch_id = await _import(client, manager, 5)

    resp = await client.post(
        f"/api/v1/batches/{batch_id}/distribute",
        json={
            "mode": "manual",
            "assignments": [
                {"agent_id": str(agent.id), "count": 2},
                {"agent_id": str(second_agent.id), "count": 2},
            ],
        },
        headers=auth_headers(manager),
    )
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["delta"] == -1
    assert detail["requested"] == 4
    assert detail["available"] == 5


@pytest.mark.asyncio
async def test_manual_distribution_and_replay(client, manager, agent, second_agent):
    batch_id = await _import(client, manager, 5)
    payload = {
        "mode": "manual",
        "assignments": [
            {"agent_id": str(agent.id), "count": 4},
            {"agent_id": str(second_agent.id), "count": 1},
        ],
        "idempotency_key": "retry-me",
    }

    first = await client.post(f"/api/v1/batches/{batch_id}/distribute", json=payload, headers=auth_headers(manager))
    second = await client.post(f"/api/v1/batches/{batch_id}/distribute", json=payload, headers=auth_headers(manager))

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["replayed"] is True
    assert second.json()["assignments"] == first.json()["assignments"]


@pytest.mark.asyncio
async def test_redistributing_without_reassign_conflicts(client, manager, agent):
    batch_id = await _import(client, manager, 2)
    payload = {"mode": "auto", "agent_ids": [str(agent.id)]}

    await client.post(f"/api/v1/batches/{batch_id}/distribute", json=payload, headers=auth_headers(manager))
    resp = await client.post(f"/api/v1/batches/{batch_id}/distribute", json=payload, headers=auth_headers(manager))
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_distribution_errors(client, manager, agent):
    batch_id = await _import(client, manager, 2)

    resp = await client.post(
        f"/api/v1/batches/{uuid.uuid4()}/distribute",
        json={"mode": "auto", "agent_ids": [str(agent.id)]},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 404

    resp = await client.post(
        f"/api/v1/batches/{batch_id}/distribute",
        json={"mode": "auto", "agent_ids": [str(uuid.uuid4())]},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 400

    # auto mode without agents fails request validation
    resp = await client.post(
        f"/api/v1/batches/{batch_id}/distribute",
        json={"mode": "auto"},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_agents_cannot_distribute(client, manager, agent):
    batch_id = await _import(client, manager, 1)
    resp = await client.post(
        f"/api/v1/batches/{batch_id}/distribute",
        json={"mode": "auto", "agent_ids": [str(agent.id)]},
        headers=auth_headers(agent),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_key_reused_on_another_batch_conflicts(client, manager, agent):
    first_id = await _import(client, manager, 2)
    resp = await client.post(
        "/api/v1/leads/import",
        json={"filename": "ikinci.csv", "leads": [{"business_name": "Yeni", "phone_number": "0555 111 2233"}]},
        headers=auth_headers(manager),
    )
    other_id = resp.json()["batch_id"]
    payload = {"mode": "auto", "agent_ids": [str(agent.id)], "idempotency_key": "same-key"}

    first = await client.post(f"/api/v1/batches/{first_id}/distribute", json=payload, headers=auth_headers(manager))
    reused = await client.post(f"/api/v1/batches/{other_id}/distribute", json=payload, headers=auth_headers(manager))

    assert first.status_code == 200
    assert reused.status_code == 409
    assert first_id in reused.json()["detail"]
