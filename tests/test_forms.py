"""Tests for form management and the public submission surface."""

import uuid

import pytest
from pydantic import ValidationError as SchemaError

from crm.schemas.form import FormCreate, FormField
from crm.services import form_service

CONTACT_FIELDS = [
    {"name": "name", "label": "Name", "type": "text", "required": True},
    {"name": "email", "label": "Email", "type": "email", "required": True},
    {"name": "plan", "label": "Plan", "type": "select", "options": ["basic", "pro"]},
]


@pytest.fixture
def public_form(db, test_org):
    return form_service.create_form(db, test_org.id, FormCreate(
        name="Contact us", fields=CONTACT_FIELDS, is_public=True,
    ))


# =============================================================================
# Schema
# =============================================================================

def test_form_needs_at_least_one_field():
    with pytest.raises(SchemaError):
        FormCreate(name="Empty", fields=[])


def test_field_names_must_be_unique():
    with pytest.raises(SchemaError):
        FormCreate(name="Dupes", fields=[
            {"name": "email", "label": "Email"},
            {"name": "email", "label": "Email again"},
        ])


def test_choice_field_needs_options():
    with pytest.raises(SchemaError):
        FormField(name="plan", label="Plan", type="radio")


def test_forms_are_private_by_default(db, test_org):
    form = form_service.create_form(db, test_org.id, FormCreate(name="Internal", fields=CONTACT_FIELDS))
    assert form.is_public is False
    assert form.status == "active"
    assert form.settings["success_message"] == "Thank you for your submission"


# =============================================================================
# Public surface
# =============================================================================

async def test_public_form_is_readable_without_auth(client, public_form):
    response = await client.get(f"/api/forms/public/{public_form.id}")
    assert response.status_code == 200
    assert [f["name"] for f in response.json()["fields"]] == ["name", "email", "plan"]


async def test_submit_public_form(client, db, public_form):
    response = await client.post(
        f"/api/forms/public/{public_form.id}/submit",
        json={"data": {"name": "Ada", "email": "ada@example.com", "extra": "dropped"}},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Thank you for your submission"

    result = form_service.list_submissions(db, public_form.id, public_form.organization_id)
    assert result["pagination"]["total"] == 1
    assert result["data"][0].data == {"name": "Ada", "email": "ada@example.com"}
    assert str(result["data"][0].id) == body["submission_id"]


async def test_submit_missing_required_field(client, public_form):
    response = await client.post(
        f"/api/forms/public/{public_form.id}/submit",
        json={"data": {"email": "ada@example.com"}},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Required field 'Name' is missing"


async def test_submit_invalid_option(client, public_form):
    response = await client.post(
        f"/api/forms/public/{public_form.id}/submit",
        json={"data": {"name": "Ada", "email": "ada@example.com", "plan": "enterprise"}},
    )
    assert response.status_code == 400


async def test_submit_unknown_form(client):
    response = await client.post(
        f"/api/forms/public/{uuid.uuid4()}/submit", json={"data": {"name": "Ada"}}
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Form not found"


async def test_submit_private_form_is_forbidden(client, db, test_org):
    form = form_service.create_form(db, test_org.id, FormCreate(name="Internal", fields=CONTACT_FIELDS))
    response = await client.post(
        f"/api/forms/public/{form.id}/submit",
        json={"data": {"name": "Ada", "email": "ada@example.com"}},
    )
    assert response.status_code == 403
    assert response.json()["error"] == "This form is not currently accepting submissions"


async def test_submit_inactive_form_is_forbidden(client, db, test_org):
    form = form_service.create_form(db, test_org.id, FormCreate(
        name="Closed", fields=CONTACT_FIELDS, is_public=True, status="inactive",
    ))
    response = await client.get(f"/api/forms/public/{form.id}")
    assert response.status_code == 403


async def test_public_submissions_are_rate_limited(client, public_form):
    payload = {"data": {"name": "Ada", "email": "ada@example.com"}}
    statuses = [
        (await client.post(f"/api/forms/public/{public_form.id}/submit", json=payload)).status_code
        for _ in range(11)
    ]
    assert statuses[:10] == [201] * 10
    assert statuses[10] == 429


# =============================================================================
# Authenticated management
# =============================================================================

async def test_create_form_via_api(authed_client):
    response = await authed_client.post("/api/forms", json={
        "name": "Webinar signup",
        "fields": [{"name": "email", "label": "Email", "type": "email", "required": True}],
        "is_public": True,
    })
    assert response.status_code == 201
    assert response.json()["is_public"] is True


async def test_other_org_cannot_read_form(client, other_auth, public_form):
    response = await client.get(f"/api/forms/{public_form.id}", headers=other_auth.bearer)
    assert response.status_code == 404
