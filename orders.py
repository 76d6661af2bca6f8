"""
Order engine: server priced placement, status lifecycle and cancellation.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo.errors import PyMongoError

from auth import Identity
from database import object_id
from errors import Conflict, Forbidden, Invalid, NotFound
from inventory import InventoryLedger
from notifications import NotificationEvent, Notifier
from schemas import ORDER_FLOW, TERMINAL_STATUS, Customer, Order

logger = logging.getLogger(__name__)


def can_transition(current: str, new: str) -> bool:
    """Forward-only moves along ORDER_FLOW; skipping ahead is allowed"""
    if current not in ORDER_FLOW or new not in ORDER_FLOW:
        return False
    return ORDER_FLOW.index(new) > ORDER_FLOW.index(current)


class OrderEngine:
    def __init__(self, orders, ledger: InventoryLedger, notifier: Notifier):
        self.orders = orders
        self.ledger = ledger
        self.notifier = notifier

    def place_order(self, identity: Identity, plant_id: str, quantity: int, customer: Customer,
                    seller_email: Optional[str] = None, address: Optional[str] = None) -> Dict[str, Any]:
        if quantity < 1:
            raise Invalid("Quantity must be at least 1")
        plant = self.ledger.get(plant_id)
        price = float(self.ledger.line_total(plant_id, quantity))
        seller = (plant.get("seller") or {}).get("email") or seller_email
        if not seller:
            raise Invalid("Seller email is required")

        # the caller is always the customer, whatever the payload says
        buyer = customer.model_copy(update={"email": identity.email})
        order = Order(
            plant_id=str(plant["_id"]),
            customer=buyer,
            seller_email=seller,
            quantity=quantity,
            price=price,
            address=address,
            created_at=datetime.now(timezone.utc),
        )

        self.ledger.decrement(plant_id, quantity)
        try:
            result = self.orders.insert_one(order.model_dump())
        except PyMongoError:
            logger.exception("Order insert failed, restocking plant %s", plant_id)
            self.ledger.increment(plant_id, quantity)
            raise

        order_id = str(result.inserted_id)
        logger.info("Order %s placed by %s: %d x %s = %.2f", order_id, identity.email, quantity, plant_id, price)

        self.notifier.emit(NotificationEvent(
            kind="customer",
            recipient=buyer.email,
            subject="Order Placed",
            message=f"You have placed an order successfully. Order Id is: {order_id}",
            order_id=order_id,
        ))
        self.notifier.emit(NotificationEvent(
            kind="seller",
            recipient=seller,
            subject="Order Placed",
            message=f"Great news! You got an order from {buyer.name or buyer.email}",
            order_id=order_id,
        ))
        return {"insertedId": order_id, "acknowledged": result.acknowledged, "price": price}

    def adjust_quantity(self, item_id: str, delta: int, direction: str = "decrease") -> Dict[str, Any]:
        if direction == "decrease":
            plant = self.ledger.decrement(item_id, delta)
        elif direction == "increase":
            plant = self.ledger.increment(item_id, delta)
        else:
            raise Invalid("Direction must be 'increase' or 'decrease'")
        return {"id": str(plant["_id"]), "quantity": plant["quantity"]}

    def _load(self, order_id: str) -> Dict[str, Any]:
        order = self.orders.find_one({"_id": object_id(order_id, "Order")})
        if not order:
            raise NotFound("Order not found")
        return order

    def update_status(self, identity: Identity, order_id: str, new_status: str) -> Dict[str, Any]:
        order = self._load(order_id)
        if order.get("seller_email") != identity.email:
            raise Forbidden("Only the seller of this order can update it")
        current = order.get("status", "Pending")
        if not can_transition(current, new_status):
            raise Conflict(f"Cannot move an order from {current} to {new_status}")
        res = self.orders.update_many(
            {"_id": order["_id"], "status": current},
            {"$set": {"status": new_status}},
        )
        if res.modified_count == 0:
            raise Conflict("Order status changed concurrently, reload and retry")
        logger.info("Order %s status %s -> %s", order_id, current, new_status)
        return {"matchedCount": res.matched_count, "modifiedCount": res.modified_count}

    def cancel_order(self, identity: Identity, order_id: str) -> Dict[str, Any]:
        order = self._load(order_id)
        if (order.get("customer") or {}).get("email") != identity.email:
            raise Forbidden("You can only cancel your own orders")
        if order.get("status") == TERMINAL_STATUS:
            raise Conflict("Cannot cancel once the product is Delivered!")
        deleted = self.orders.find_one_and_delete({"_id": order["_id"], "status": {"$ne": TERMINAL_STATUS}})
        if deleted is None:
            raise Conflict("Cannot cancel once the product is Delivered!")

        restocked = True
        try:
            self.ledger.increment(deleted["plant_id"], deleted["quantity"])
        except NotFound:
            logger.warning("Plant %s of cancelled order %s no longer exists, not restocked",
                           deleted["plant_id"], order_id)
            restocked = False
        logger.info("Order %s cancelled by %s", order_id, identity.email)
        return {"deletedCount": 1, "restocked": restocked}
