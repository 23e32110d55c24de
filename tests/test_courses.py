"""Tests for courses and the ordering of their modules and lessons."""


async def _course_with_modules(client, titles=("Intro", "Basics", "Advanced")):
    course = (await client.post("/api/courses", json={"title": "Onboarding"})).json()
    modules = []
    for title in titles:
        response = await client.post(f"/api/courses/{course['id']}/modules", json={"title": title})
        assert response.status_code == 201, response.text
        modules.append(response.json())
    return course, modules


async def _module_titles(client, course_id):
    detail = (await client.get(f"/api/courses/{course_id}")).json()
    return [(m["title"], m["order_index"]) for m in detail["modules"]]


async def test_new_course_is_unpublished(authed_client):
    response = await authed_client.post("/api/courses", json={"title": "Onboarding"})
    assert response.status_code == 201
    assert response.json()["is_published"] is False


async def test_publish_and_unpublish(authed_client):
    course = (await authed_client.post("/api/courses", json={"title": "Onboarding"})).json()

    response = await authed_client.post(f"/api/courses/{course['id']}/publish")
    assert response.json()["is_published"] is True

    response = await authed_client.post(f"/api/courses/{course['id']}/unpublish")
    assert response.json()["is_published"] is False


async def test_modules_append_in_order(authed_client):
    course, modules = await _course_with_modules(authed_client)

    assert [m["order_index"] for m in modules] == [0, 1, 2]
    assert await _module_titles(authed_client, course["id"]) == [
        ("Intro", 0), ("Basics", 1), ("Advanced", 2),
    ]


async def test_insert_module_shifts_siblings(authed_client):
    course, _ = await _course_with_modules(authed_client)

    response = await authed_client.post(
        f"/api/courses/{course['id']}/modules", json={"title": "Welcome", "order_index": 0}
    )
    assert response.json()["order_index"] == 0
    assert await _module_titles(authed_client, course["id"]) == [
        ("Welcome", 0), ("Intro", 1), ("Basics", 2), ("Advanced", 3),
    ]


async def test_delete_module_closes_gap(authed_client):
    course, modules = await _course_with_modules(authed_client)

    response = await authed_client.delete(f"/api/courses/{course['id']}/modules/{modules[0]['id']}")
    assert response.status_code == 200
    assert await _module_titles(authed_client, course["id"]) == [("Basics", 0), ("Advanced", 1)]


async def test_reorder_modules(authed_client):
    course, modules = await _course_with_modules(authed_client)
    ids = [m["id"] for m in modules]

    response = await authed_client.put(
        f"/api/courses/{course['id']}/modules/reorder", json={"ids": [ids[2], ids[0], ids[1]]}
    )
    assert response.status_code == 200
    assert [(m["title"], m["order_index"]) for m in response.json()["modules"]] == [
        ("Advanced", 0), ("Intro", 1), ("Basics", 2),
    ]


async def test_reorder_modules_rejects_partial_list(authed_client):
    course, modules = await _course_with_modules(authed_client)

    response = await authed_client.put(
        f"/api/courses/{course['id']}/modules/reorder", json={"ids": [modules[0]["id"]]}
    )
    assert response.status_code == 400


async def test_lessons_keep_dense_order(authed_client):
    course, modules = await _course_with_modules(authed_client, titles=("Only",))
    url = f"/api/courses/{course['id']}/modules/{modules[0]['id']}/lessons"

    lessons = []
    for title in ("One", "Two", "Three"):
        lessons.append((await authed_client.post(url, json={"title": title})).json())

    await authed_client.delete(f"{url}/{lessons[1]['id']}")
    response = await authed_client.put(
        f"{url}/reorder", json={"ids": [lessons[2]["id"], lessons[0]["id"]]}
    )
    assert response.status_code == 200
    assert [(le["title"], le["order_index"]) for le in response.json()["lessons"]] == [
        ("Three", 0), ("One", 1),
    ]


async def test_course_is_tenant_scoped(client, authed_client, other_auth):
    course, _ = await _course_with_modules(authed_client, titles=())
    response = await client.get(f"/api/courses/{course['id']}", headers=other_auth.bearer)
    assert response.status_code == 404
