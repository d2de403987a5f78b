def test_create_list_and_get(client, admin_headers, category):
    client.post("/categories", json={"name": "Abstract"}, headers=admin_headers)
    names = [c["name"] for c in client.get("/categories").json()]
    assert names == ["Abstract", "Paintings"]

    res = client.get(f"/categories/{category['id']}")
    assert res.status_code == 200
    assert res.json()["description"] == "Oil and acrylic"


def test_missing_category(client):
    assert client.get("/categories/999").status_code == 404


def test_duplicate_name_rejected(client, admin_headers, category):
    res = client.post("/categories", json={"name": "paintings"}, headers=admin_headers)
    assert res.status_code == 400


def test_update_category(client, admin_headers, category):
    res = client.put(f"/categories/{category['id']}", json={"description": "Canvas work"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["name"] == "Paintings"
    assert res.json()["description"] == "Canvas work"


def test_delete_with_products_rejected(client, admin_headers, category, make_product):
    make_product()
    res = client.delete(f"/categories/{category['id']}", headers=admin_headers)
    assert res.status_code == 409
    assert "1 product(s)" in res.json()["detail"]
    assert client.get(f"/categories/{category['id']}/product-count").json()["count"] == 1


def test_delete_empty_category(client, admin_headers, category):
    res = client.delete(f"/categories/{category['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert client.get(f"/categories/{category['id']}").status_code == 404


def test_category_products(client, category, make_product):
    product = make_product()
    res = client.get(f"/categories/{category['id']}/products")
    assert [p["id"] for p in res.json()] == [product["id"]]
