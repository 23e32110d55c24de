"""Tests for pipelines, stage ordering and deals."""

from decimal import Decimal

from crm.db.enums import DealStatus
from crm.services import deal_service


async def _pipeline(client, name="Sales", stages=("Lead", "Proposal", "Closed")):
    response = await client.post(
        "/api/pipelines",
        json={"name": name, "stages": [{"name": s} for s in stages]},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_pipeline_keeps_stage_order(authed_client):
    pipeline = await _pipeline(authed_client)

    assert [s["name"] for s in pipeline["stages"]] == ["Lead", "Proposal", "Closed"]
    assert [s["position"] for s in pipeline["stages"]] == [0, 1, 2]


async def test_duplicate_pipeline_name_rejected(authed_client):
    await _pipeline(authed_client)
    response = await authed_client.post("/api/pipelines", json={"name": "Sales"})
    assert response.status_code == 400
    assert response.json()["error"] == "Pipeline with this name already exists"


async def test_add_stage_appends(authed_client):
    pipeline = await _pipeline(authed_client)
    response = await authed_client.post(
        f"/api/pipelines/{pipeline['id']}/stages", json={"name": "Won"}
    )
    assert response.status_code == 201
    assert response.json()["position"] == 3


async def test_reorder_stages(authed_client):
    pipeline = await _pipeline(authed_client)
    ids = [s["id"] for s in pipeline["stages"]]

    response = await authed_client.put(
        f"/api/pipelines/{pipeline['id']}/stages/reorder",
        json={"stage_ids": list(reversed(ids))},
    )
    assert response.status_code == 200
    assert [s["name"] for s in response.json()["stages"]] == ["Closed", "Proposal", "Lead"]
    assert [s["position"] for s in response.json()["stages"]] == [0, 1, 2]


async def test_reorder_requires_every_stage(authed_client):
    pipeline = await _pipeline(authed_client)
    ids = [s["id"] for s in pipeline["stages"]]

    response = await authed_client.put(
        f"/api/pipelines/{pipeline['id']}/stages/reorder",
        json={"stage_ids": ids[:2]},
    )
    assert response.status_code == 400


async def test_delete_stage_closes_gap(authed_client):
    pipeline = await _pipeline(authed_client)
    middle = pipeline["stages"][1]["id"]

    response = await authed_client.delete(f"/api/pipelines/{pipeline['id']}/stages/{middle}")
    assert response.status_code == 200

    response = await authed_client.get(f"/api/pipelines/{pipeline['id']}")
    stages = response.json()["stages"]
    assert [s["name"] for s in stages] == ["Lead", "Closed"]
    assert [s["position"] for s in stages] == [0, 1]


async def test_stage_with_deals_cannot_be_deleted(authed_client):
    pipeline = await _pipeline(authed_client)
    stage = pipeline["stages"][0]
    await authed_client.post("/api/deals", json={
        "pipeline_id": pipeline["id"],
        "stage_id": stage["id"],
        "title": "Big deal",
    })

    response = await authed_client.delete(f"/api/pipelines/{pipeline['id']}/stages/{stage['id']}")
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot delete a stage that has deals"


async def test_create_deal(authed_client):
    pipeline = await _pipeline(authed_client)
    contact = (await authed_client.post("/api/contacts", json={"first_name": "Ada"})).json()

    response = await authed_client.post("/api/deals", json={
        "pipeline_id": pipeline["id"],
        "stage_id": pipeline["stages"][0]["id"],
        "contact_id": contact["id"],
        "title": "Website redesign",
        "value": "1500.00",
    })
    assert response.status_code == 201
    deal = response.json()
    assert deal["status"] == "open"
    assert deal["currency"] == "USD"
    assert float(deal["value"]) == 1500.0


async def test_deal_stage_must_belong_to_pipeline(authed_client):
    first = await _pipeline(authed_client, name="First")
    second = await _pipeline(authed_client, name="Second")

    response = await authed_client.post("/api/deals", json={
        "pipeline_id": first["id"],
        "stage_id": second["stages"][0]["id"],
        "title": "Mismatched",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Stage does not belong to the pipeline"


async def test_list_deals_filters_by_status(authed_client):
    pipeline = await _pipeline(authed_client)
    stage_id = pipeline["stages"][0]["id"]
    for title, status in (("A", "open"), ("B", "won"), ("C", "won")):
        await authed_client.post("/api/deals", json={
            "pipeline_id": pipeline["id"],
            "stage_id": stage_id,
            "title": title,
            "status": status,
        })

    response = await authed_client.get("/api/deals", params={"status": "won"})
    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 2


async def test_delete_pipeline_removes_its_deals(authed_client):
    pipeline = await _pipeline(authed_client)
    deal = (await authed_client.post("/api/deals", json={
        "pipeline_id": pipeline["id"],
        "stage_id": pipeline["stages"][0]["id"],
        "title": "Doomed",
    })).json()

    response = await authed_client.delete(f"/api/pipelines/{pipeline['id']}")
    assert response.status_code == 200
    assert response.json()["message"] == "Pipeline deleted successfully"

    response = await authed_client.get(f"/api/deals/{deal['id']}")
    assert response.status_code == 404


async def test_deal_count_and_value_aggregates(authed_client, db, test_org, other_org):
    pipeline = await _pipeline(authed_client)
    stage_id = pipeline["stages"][0]["id"]
    for title, value, status in (("A", "100.00", "open"), ("B", "250.50", "won"), ("C", "49.50", "won"), ("D", None, "lost")):
        response = await authed_client.post("/api/deals", json={
            "pipeline_id": pipeline["id"],
            "stage_id": stage_id,
            "title": title,
            "value": value,
            "status": status,
        })
        assert response.status_code == 201, response.text

    assert deal_service.count_deals(db, test_org.id) == 4
    assert deal_service.count_deals(db, test_org.id, DealStatus.WON) == 2
    assert deal_service.count_deals(db, other_org.id) == 0
    assert deal_service.sum_deal_value(db, test_org.id) == Decimal("400.00")
    assert deal_service.sum_deal_value(db, test_org.id, DealStatus.WON) == Decimal("300.00")
    assert deal_service.sum_deal_value(db, test_org.id, DealStatus.LOST) == Decimal("0")
