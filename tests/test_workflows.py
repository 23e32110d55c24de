"""Tests for workflow definitions, activation and step ordering."""

import pytest
from pydantic import ValidationError as SchemaError

from crm.db.enums import WorkflowTriggerType
from crm.schemas.workflow import WorkflowStepCreate
from crm.services import workflow_service

WORKFLOW = {
    "name": "Welcome series",
    "trigger_type": "contact_created",
    "steps": [
        {"step_type": "send_email", "step_config": {"subject": "Welcome!"}},
        {"step_type": "wait", "step_config": {"delay_minutes": 1440}},
        {"step_type": "send_email", "step_config": {"subject": "Getting started"}},
    ],
}


async def _workflow(client):
    response = await client.post("/api/workflows", json=WORKFLOW)
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# Step config rules
# =============================================================================

def test_wait_step_needs_positive_delay():
    with pytest.raises(SchemaError):
        WorkflowStepCreate(step_type="wait", step_config={"delay_minutes": 0})
    with pytest.raises(SchemaError):
        WorkflowStepCreate(step_type="wait", step_config={"delay_minutes": "soon"})


def test_send_email_step_needs_subject():
    with pytest.raises(SchemaError):
        WorkflowStepCreate(step_type="send_email", step_config={})


async def test_invalid_step_config_is_rejected_by_api(authed_client):
    response = await authed_client.post("/api/workflows", json={
        "name": "Broken",
        "trigger_type": "manual",
        "steps": [{"step_type": "wait", "step_config": {}}],
    })
    assert response.status_code == 400


# =============================================================================
# Workflows
# =============================================================================

async def test_new_workflow_is_inactive_with_ordered_steps(authed_client):
    workflow = await _workflow(authed_client)

    assert workflow["is_active"] is False
    assert [s["order_index"] for s in workflow["steps"]] == [0, 1, 2]
    assert [s["step_type"] for s in workflow["steps"]] == ["send_email", "wait", "send_email"]


async def test_activate_is_idempotent(authed_client):
    workflow = await _workflow(authed_client)
    url = f"/api/workflows/{workflow['id']}"

    first = await authed_client.post(f"{url}/activate")
    assert first.status_code == 200
    assert first.json()["message"] == "Workflow activated"
    assert first.json()["workflow"]["is_active"] is True

    second = await authed_client.post(f"{url}/activate")
    assert second.json()["message"] == "Workflow is already active"

    third = await authed_client.post(f"{url}/deactivate")
    assert third.json()["message"] == "Workflow deactivated"
    assert third.json()["workflow"]["is_active"] is False

    fourth = await authed_client.post(f"{url}/deactivate")
    assert fourth.json()["message"] == "Workflow is already inactive"


async def test_list_filters_active(authed_client):
    workflow = await _workflow(authed_client)
    await authed_client.post(f"/api/workflows/{workflow['id']}/activate")

    response = await authed_client.get("/api/workflows", params={"is_active": "true"})
    assert response.status_code == 200
    assert [w["id"] for w in response.json()["data"]] == [workflow["id"]]


async def test_update_replaces_steps(authed_client):
    workflow = await _workflow(authed_client)

    response = await authed_client.put(f"/api/workflows/{workflow['id']}", json={
        "steps": [{"step_type": "add_tag", "step_config": {"tag_id": "vip"}}],
    })
    assert response.status_code == 200
    steps = response.json()["steps"]
    assert len(steps) == 1
    assert steps[0]["step_type"] == "add_tag"
    assert steps[0]["order_index"] == 0


# =============================================================================
# Steps
# =============================================================================

async def test_insert_step_renumbers(authed_client):
    workflow = await _workflow(authed_client)
    url = f"/api/workflows/{workflow['id']}/steps"

    response = await authed_client.post(url, json={
        "step_type": "create_task", "step_config": {"title": "Call"}, "order_index": 1,
    })
    assert response.status_code == 201
    assert response.json()["order_index"] == 1

    steps = (await authed_client.get(url)).json()
    assert [s["step_type"] for s in steps] == ["send_email", "create_task", "wait", "send_email"]
    assert [s["order_index"] for s in steps] == [0, 1, 2, 3]


async def test_insert_step_index_is_clamped(authed_client):
    workflow = await _workflow(authed_client)
    response = await authed_client.post(f"/api/workflows/{workflow['id']}/steps", json={
        "step_type": "webhook", "step_config": {"url": "https://example.com"}, "order_index": 99,
    })
    assert response.json()["order_index"] == 3


async def test_delete_step_closes_gap(authed_client):
    workflow = await _workflow(authed_client)
    url = f"/api/workflows/{workflow['id']}/steps"
    middle = workflow["steps"][1]["id"]

    response = await authed_client.delete(f"{url}/{middle}")
    assert response.status_code == 200

    steps = (await authed_client.get(url)).json()
    assert [s["order_index"] for s in steps] == [0, 1]
    assert middle not in [s["id"] for s in steps]


async def test_update_step_validates_config(authed_client):
    workflow = await _workflow(authed_client)
    wait_step = workflow["steps"][1]["id"]

    response = await authed_client.put(
        f"/api/workflows/{workflow['id']}/steps/{wait_step}",
        json={"step_config": {"delay_minutes": -5}},
    )
    assert response.status_code == 400


async def test_other_org_cannot_activate(client, authed_client, other_auth):
    workflow = await _workflow(authed_client)
    response = await client.post(
        f"/api/workflows/{workflow['id']}/activate", headers=other_auth.bearer
    )
    assert response.status_code == 404


async def test_active_workflows_by_trigger(authed_client, db, test_org):
    workflow = await _workflow(authed_client)
    assert workflow_service.get_active_workflows_by_trigger(db, test_org.id, WorkflowTriggerType.CONTACT_CREATED) == []

    await authed_client.post(f"/api/workflows/{workflow['id']}/activate")

    active = workflow_service.get_active_workflows_by_trigger(db, test_org.id, WorkflowTriggerType.CONTACT_CREATED)
    assert [str(w.id) for w in active] == [workflow["id"]]
    assert len(active[0].steps) == 3
    assert workflow_service.get_active_workflows_by_trigger(db, test_org.id, WorkflowTriggerType.FORM_SUBMITTED) == []
