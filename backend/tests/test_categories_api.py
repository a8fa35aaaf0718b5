"""API tests for categories (/categories)."""

import uuid


def test_create_and_list_categories(client, operator):
    for title in ("Plumbing", "electrical", "  Hardware  "):
        assert client.post("/categories", json={"title": title}).status_code == 201

    res = client.get("/categories")

    assert res.status_code == 200
    assert [c["title"] for c in res.json()] == ["electrical", "Hardware", "Plumbing"]


def test_duplicate_title_conflicts(client, operator):
    client.post("/categories", json={"title": "Plumbing"})
    res = client.post("/categories", json={"title": "PLUMBING"})
    assert res.status_code == 409


def test_title_length_is_validated(client, operator):
    assert client.post("/categories", json={"title": ""}).status_code == 400
    assert client.post("/categories", json={"title": "x" * 51}).status_code == 400


def test_rename_category(client, operator):
    category = client.post("/categories", json={"title": "Plumbing"}).json()

    res = client.patch(f"/categories/{category['id']}", json={"title": "Plumbing & Sanitary"})

    assert res.status_code == 200
    assert res.json()["title"] == "Plumbing & Sanitary"


def test_rename_to_taken_title_conflicts(client, operator):
    client.post("/categories", json={"title": "Plumbing"})
    category = client.post("/categories", json={"title": "Electrical"}).json()

    res = client.patch(f"/categories/{category['id']}", json={"title": "plumbing"})

    assert res.status_code == 409


def test_rename_unknown_category_is_404(client, operator):
    res = client.patch(f"/categories/{uuid.uuid4()}", json={"title": "Plumbing"})
    assert res.status_code == 404


def test_delete_unused_category(client, operator):
    category = client.post("/categories", json={"title": "Plumbing"}).json()

    assert client.delete(f"/categories/{category['id']}").status_code == 200
    assert client.get("/categories").json() == []


def test_delete_category_in_use_conflicts(client, make_product):
    category = client.post("/categories", json={"title": "Plumbing"}).json()
    make_product(category_id=category["id"])

    res = client.delete(f"/categories/{category['id']}")

    assert res.status_code == 409
    assert res.json()["detail"]["products_count"] == 1


def test_categories_need_a_shop_role(client, login_as):
    login_as("USER")
    assert client.get("/categories").status_code == 403
