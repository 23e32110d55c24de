"""Tests for cross-tenant organization and user administration."""

import uuid

from crm.db.models import Contact


async def test_create_and_update_organization(client, admin_auth):
    response = await client.post(
        "/api/admin/organizations", json={"name": "Acme", "industry": "SaaS"}, headers=admin_auth.bearer
    )
    assert response.status_code == 201
    org = response.json()

    response = await client.put(
        f"/api/admin/organizations/{org['id']}", json={"website": "https://acme.test"}, headers=admin_auth.bearer
    )
    assert response.json()["website"] == "https://acme.test"
    assert response.json()["industry"] == "SaaS"


async def test_list_organizations_is_sorted_by_name(client, admin_auth, other_org):
    response = await client.get("/api/admin/organizations", headers=admin_auth.bearer)
    assert response.status_code == 200
    body = response.json()
    assert [o["name"] for o in body["data"]] == ["Other Organization", "Test Organization"]
    assert body["pagination"]["total"] == 2


async def test_delete_organization_cascades(client, db, admin_auth, other_org):
    db.add(Contact(organization_id=other_org.id, first_name="Gone"))
    db.flush()

    response = await client.delete(f"/api/admin/organizations/{other_org.id}", headers=admin_auth.bearer)
    assert response.json()["message"] == "Organization deleted successfully"

    db.expire_all()
    assert db.query(Contact).filter(Contact.organization_id == other_org.id).count() == 0


async def test_user_email_is_normalized_and_unique(client, admin_auth, test_org):
    payload = {"organization_id": str(test_org.id), "name": "Ada", "email": "  Ada@Example.COM "}

    response = await client.post("/api/admin/users", json=payload, headers=admin_auth.bearer)
    assert response.status_code == 201
    assert response.json()["email"] == "ada@example.com"
    assert response.json()["role"] == "user"

    response = await client.post("/api/admin/users", json=payload, headers=admin_auth.bearer)
    assert response.status_code == 400
    assert response.json()["error"] == "User with this email already exists"


async def test_user_needs_existing_org(client, admin_auth):
    response = await client.post("/api/admin/users", json={
        "organization_id": str(uuid.uuid4()), "name": "Nobody", "email": "nobody@example.com",
    }, headers=admin_auth.bearer)
    assert response.status_code == 404
    assert response.json()["error"] == "Organization not found"


async def test_list_users_filters_by_role(client, admin_auth, test_user, other_user):
    response = await client.get("/api/admin/users", params={"role": "admin"}, headers=admin_auth.bearer)
    assert [u["id"] for u in response.json()["data"]] == [str(admin_auth.user.id)]

    response = await client.get(
        "/api/admin/users", params={"organization_id": str(other_user.organization_id)}, headers=admin_auth.bearer
    )
    assert [u["id"] for u in response.json()["data"]] == [str(other_user.id)]


async def test_deactivate_and_delete_user(client, admin_auth, test_user):
    response = await client.put(
        f"/api/admin/users/{test_user.id}", json={"is_active": False}, headers=admin_auth.bearer
    )
    assert response.json()["is_active"] is False

    response = await client.delete(f"/api/admin/users/{test_user.id}", headers=admin_auth.bearer)
    assert response.json()["message"] == "User deleted successfully"

    response = await client.get(f"/api/admin/users/{test_user.id}", headers=admin_auth.bearer)
    assert response.status_code == 404


async def test_regular_user_is_denied(client, test_auth):
    response = await client.get("/api/admin/users", headers=test_auth.bearer)
    assert response.status_code == 403
