from types import SimpleNamespace
from unittest import mock

import mongomock
import pytest
import stripe
from bson import ObjectId

import payments
from errors import Invalid, NotFound, PaymentFailed
from inventory import InventoryLedger
from payments import PaymentReconciliation, to_minor_units


@pytest.fixture
def plants():
    return mongomock.MongoClient()["plantnet"]["plant"]


def add_plant(plants, price):
    return str(plants.insert_one({"name": "Fern", "price": price, "quantity": 10}).inserted_id)


@pytest.mark.parametrize("amount,cents", [(37.5, 3750), (0.1 * 3, 30), (19.999, 2000), (1, 100)])
def test_to_minor_units(amount, cents):
    assert to_minor_units(amount) == cents


def test_quote_uses_catalog_price(plants):
    pid = add_plant(plants, 12.50)
    assert PaymentReconciliation(InventoryLedger(plants), api_key="").quote(pid, 3) == 3750


def test_quote_unknown_item_fails(plants):
    reconciler = PaymentReconciliation(InventoryLedger(plants), api_key="sk_test_123")
    with mock.patch.object(stripe.PaymentIntent, "create") as create:
        with pytest.raises(NotFound):
            reconciler.create_intent(str(ObjectId()), 1)
        create.assert_not_called()


def test_quote_rejects_zero_quantity(plants):
    pid = add_plant(plants, 5)
    with pytest.raises(Invalid):
        PaymentReconciliation(InventoryLedger(plants), api_key="").quote(pid, 0)


def test_create_intent_sends_computed_amount(plants):
    pid = add_plant(plants, 12.50)
    reconciler = PaymentReconciliation(InventoryLedger(plants), api_key="sk_test_123", currency="usd")
    intent = SimpleNamespace(id="pi_1", client_secret="pi_1_secret")
    with mock.patch.object(stripe.PaymentIntent, "create", return_value=intent) as create:
        result = reconciler.create_intent(pid, 3)
    create.assert_called_once_with(
        api_key="sk_test_123",
        amount=3750,
        currency="usd",
        automatic_payment_methods={"enabled": True},
    )
    assert result == {"clientSecret": "pi_1_secret", "amount": 3750, "currency": "usd"}


def test_create_intent_without_stripe_is_simulated(plants):
    pid = add_plant(plants, 2)
    result = PaymentReconciliation(InventoryLedger(plants), api_key="").create_intent(pid, 2)
    assert result["payment_simulated"] is True
    assert result["amount"] == 400
    assert result["clientSecret"] is None


def test_stripe_error_is_payment_failed(plants):
    pid = add_plant(plants, 2)
    reconciler = PaymentReconciliation(InventoryLedger(plants), api_key="sk_test_123")
    with mock.patch.object(stripe.PaymentIntent, "create", side_effect=stripe.StripeError("card declined")):
        with pytest.raises(PaymentFailed):
            reconciler.create_intent(pid, 1)


def test_payment_intent_endpoint(client, login, make_user, make_plant, monkeypatch):
    monkeypatch.setattr(payments, "STRIPE_SECRET", "")
    make_user("a@x.com")
    pid = make_plant(price=12.5)
    login("a@x.com")
    res = client.post("/create-payment-intent", json={"plant_id": pid, "total_quantity": 3, "price": 1})
    assert res.status_code == 200
    assert res.json()["amount"] == 3750

    res = client.post("/create-payment-intent", json={"plant_id": str(ObjectId()), "total_quantity": 3})
    assert res.status_code == 404
