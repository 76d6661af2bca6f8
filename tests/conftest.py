from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

import main


@pytest.fixture
def db():
    return mongomock.MongoClient()["plantnet"]


@pytest.fixture
def outbox():
    return []


@pytest.fixture
def client(db, outbox):
    def mailer(recipient, subject, message):
        outbox.append((recipient, subject, message))
        return True

    main.app.dependency_overrides[main.get_database] = lambda: db
    main.app.dependency_overrides[main.get_mailer] = lambda: mailer
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    def _login(email):
        client.cookies.clear()
        res = client.post("/jwt", json={"email": email})
        assert res.status_code == 200
    return _login


@pytest.fixture
def make_user(db):
    def _make(email, role="Customer", name="Test User", status=None):
        doc = {"email": email, "name": name, "role": role, "created_at": datetime.now(timezone.utc)}
        if status:
            doc["status"] = status
        db["user"].insert_one(doc)
        return doc
    return _make


@pytest.fixture
def make_plant(db):
    def _make(price=10.0, quantity=5, seller_email="seller@mail.com", name="Monstera", category="Indoor"):
        res = db["plant"].insert_one({
            "name": name,
            "category": category,
            "price": price,
            "quantity": quantity,
            "image": "https://img.plants/monstera.jpg",
            "seller": {"email": seller_email, "name": "Green Seller"},
        })
        return str(res.inserted_id)
    return _make
