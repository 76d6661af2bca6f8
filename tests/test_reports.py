from datetime import datetime, timezone
from unittest import mock

import mongomock
import pytest
from bson import ObjectId

from reports import ReportingAggregator


@pytest.fixture
def store():
    return mongomock.MongoClient()["plantnet"]


@pytest.fixture
def reports(store):
    return ReportingAggregator(store["user"], store["plant"], store["order"])


def add_plant(store, name="Monstera"):
    return str(store["plant"].insert_one({
        "name": name, "category": "Indoor", "image": "m.jpg", "price": 10, "quantity": 3,
    }).inserted_id)


def add_order(store, plant_id, price, quantity=1, day=1, customer="a@x.com", seller="seller@mail.com"):
    store["order"].insert_one({
        "plant_id": plant_id,
        "customer": {"email": customer, "name": "Alice"},
        "seller_email": seller,
        "quantity": quantity,
        "price": price,
        "status": "Pending",
        "created_at": datetime(2024, 5, day, 12, 0, tzinfo=timezone.utc),
    })


def test_admin_summary_single_day(reports, store):
    pid = add_plant(store)
    store["user"].insert_one({"email": "a@x.com", "role": "Customer"})
    for revenue in (10, 20, 30):
        add_order(store, pid, revenue, quantity=2)

    summary = reports.admin_summary()
    assert summary["totalUsers"] == 1
    assert summary["totalPlants"] == 1
    assert summary["totalOrders"] == 3
    assert summary["totalRevenue"] == 60
    assert summary["chartData"] == [
        {"date": "2024-05-01", "totalOrders": 3, "totalRevenue": 60, "totalQuantity": 6},
    ]


def test_chart_is_sorted_newest_first(reports, store):
    pid = add_plant(store)
    add_order(store, pid, 5, day=1)
    add_order(store, pid, 7, day=3)
    add_order(store, pid, 9, day=2)
    assert [b["date"] for b in reports.admin_summary()["chartData"]] == ["2024-05-03", "2024-05-02", "2024-05-01"]


def test_admin_summary_empty(reports):
    assert reports.admin_summary() == {
        "totalUsers": 0, "totalPlants": 0, "totalRevenue": 0, "totalOrders": 0, "chartData": [],
    }


def test_customer_orders_are_enriched(reports, store):
    pid = add_plant(store, name="Fern")
    add_order(store, pid, 10)
    add_order(store, pid, 10, customer="b@x.com")

    orders = reports.orders_for_customer("a@x.com")
    assert len(orders) == 1
    assert orders[0]["name"] == "Fern"
    assert orders[0]["category"] == "Indoor"
    assert orders[0]["image"] == "m.jpg"
    assert "plants" not in orders[0]


def test_orders_for_removed_plants_are_dropped(reports, store):
    pid = add_plant(store)
    add_order(store, pid, 10)
    add_order(store, str(ObjectId()), 10)
    assert len(reports.orders_for_seller("seller@mail.com")) == 1


def test_reporting_endpoints(client, login, make_user, make_plant, db):
    make_user("a@x.com")
    make_user("seller@mail.com", role="Seller")
    make_user("admin@mail.com", role="Admin")
    pid = make_plant(price=10, quantity=10)
    login("a@x.com")
    client.post("/order", json={"plant_id": pid, "quantity": 2, "customer": {"email": "a@x.com"}})

    res = client.get("/orders")
    assert res.status_code == 200
    assert res.json()[0]["name"] == "Monstera"
    assert client.get("/orders", params={"email": "b@x.com"}).status_code == 403

    login("seller@mail.com")
    seller_orders = client.get("/orders/seller").json()
    assert [o["price"] for o in seller_orders] == [20]

    login("admin@mail.com")
    stats = client.get("/admin-stat").json()
    assert stats["totalOrders"] == 1
    assert stats["totalRevenue"] == 20
    assert stats["totalUsers"] == 3
    assert len(stats["chartData"]) == 1


def test_admin_summary_is_computed_by_the_database():
    orders = mock.MagicMock()
    orders.aggregate.side_effect = [
        iter([{"_id": None, "totalRevenue": 15.5, "totalOrders": 2}]),
        iter([{"_id": "2024-05-01", "totalOrders": 2, "totalRevenue": 15.5, "totalQuantity": 3}]),
    ]
    users, plants = mock.MagicMock(), mock.MagicMock()
    users.count_documents.return_value = 4
    plants.count_documents.return_value = 2

    summary = ReportingAggregator(users, plants, orders).admin_summary()

    orders.find.assert_not_called()
    chart_pipeline = orders.aggregate.call_args_list[1][0][0]
    assert chart_pipeline[0]["$group"]["_id"] == {"$dateToString": {"format": "%Y-%m-%d", "date": "$created_at"}}
    assert chart_pipeline[-1] == {"$sort": {"_id": -1}}
    assert summary == {
        "totalUsers": 4,
        "totalPlants": 2,
        "totalRevenue": 15.5,
        "totalOrders": 2,
        "chartData": [{"date": "2024-05-01", "totalOrders": 2, "totalRevenue": 15.5, "totalQuantity": 3}],
    }
