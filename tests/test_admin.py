from datetime import datetime, timezone
from types import SimpleNamespace

from storefront.routers.admin import compute_stats, growth

from .test_orders import CHECKOUT, fill_cart


def row(created_at, **fields):
    return SimpleNamespace(created_at=created_at, **fields)


def test_growth():
    assert growth(10, 0) == 0.0
    assert growth(150, 100) == 50.0
    assert growth(50, 100) == -50.0


def test_compute_stats_handles_year_boundary():
    now = datetime(2025, 1, 15, tzinfo=timezone.utc)
    orders = [
        row(datetime(2025, 1, 2, tzinfo=timezone.utc), total_amount=300.0),
        row(datetime(2024, 12, 20, tzinfo=timezone.utc), total_amount=200.0),
        row(datetime(2024, 1, 20, tzinfo=timezone.utc), total_amount=1000.0),
    ]
    products = [row(datetime(2024, 12, 1), stock=2), row(datetime(2024, 6, 1), stock=40)]
    users = [row(datetime(2024, 12, 3)), row(datetime(2025, 1, 3))]

    stats = compute_stats(products, 3, orders, users, now=now)
    assert stats["total_revenue"] == 1500.0
    assert stats["monthly_revenue"] == 300.0
    assert stats["last_month_revenue"] == 200.0
    assert stats["monthly_growth"] == 50.0
    assert stats["product_growth"] == 100.0
    assert stats["user_growth"] == 100.0
    assert stats["total_categories"] == 3
    assert stats["low_stock_products"] == [products[0]]


def test_dashboard(client, admin_headers, user_headers, make_product):
    product = make_product(stock=3)
    make_product(name="Plenty", stock=30)
    fill_cart(client, user_headers, product, quantity=1)
    client.post("/orders", json=CHECKOUT, headers=user_headers)

    stats = client.get("/admin/dashboard", headers=admin_headers).json()
    assert stats["total_products"] == 2
    assert stats["total_categories"] == 1
    assert stats["total_orders"] == 1
    assert stats["total_users"] == 1
    assert stats["total_revenue"] == 100.0
    assert stats["monthly_revenue"] == 100.0
    assert [p["name"] for p in stats["low_stock_products"]] == ["Sunset"]


def test_update_status_notifies_and_emails(client, admin_headers, user_headers, make_product, sent_emails):
    product = make_product()
    fill_cart(client, user_headers, product, quantity=1)
    order = client.post("/orders", json=CHECKOUT, headers=user_headers).json()

    res = client.put(f"/admin/orders/{order['id']}/status", json={"status": "shipped", "tracking_number": "TRK1"},
                     headers=admin_headers)
    assert res.status_code == 200, res.text
    assert res.json()["status"] == "shipped"
    assert res.json()["user"]["email"] == "jane@example.com"

    note = client.get("/notifications", headers=user_headers).json()[0]
    assert note["message"] == f"Your order #{order['order_number']} status has been updated to shipped."
    status_mail = sent_emails[-1]
    assert status_mail["subject"] == f"Order Status Update - {order['order_number']}"
    assert "TRK1" in status_mail["html"]

    assert client.put(f"/admin/orders/{order['id']}/status", json={"status": "lost"},
                      headers=admin_headers).status_code == 422


def test_admin_orders_and_delete(client, admin_headers, user_headers, make_product):
    product = make_product()
    fill_cart(client, user_headers, product, quantity=1)
    order = client.post("/orders", json=CHECKOUT, headers=user_headers).json()

    listed = client.get("/admin/orders", headers=admin_headers).json()
    assert [o["id"] for o in listed] == [order["id"]]
    assert client.get("/admin/orders", headers=user_headers).status_code == 403

    assert client.delete(f"/admin/orders/{order['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/orders/{order['id']}", headers=user_headers).status_code == 404

    actions = [(a["action"], a["entity"]) for a in client.get("/admin/activity", headers=admin_headers).json()]
    assert actions[0] == ("delete", "order")
    assert ("create", "product") in actions


def test_test_email(client, admin_headers, sent_emails):
    res = client.post("/admin/test-email", json={"email": "ops@example.com"}, headers=admin_headers)
    assert res.status_code == 200
    assert sent_emails[-1]["to"] == "ops@example.com"
