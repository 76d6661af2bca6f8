"""
Inventory ledger and plant catalog.

Stock is only ever changed with a single atomic `$inc` on the plant document;
the decrement carries its own stock guard in the filter so concurrent orders
for the same plant can neither lose updates nor oversell.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List

from pymongo import ReturnDocument

from database import create_document, get_documents, object_id
from errors import Conflict, Invalid, NotFound
from schemas import Plant, SellerInfo

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise Invalid("Quantity must be a positive integer")


class InventoryLedger:
    def __init__(self, plants):
        self.plants = plants

    def get(self, item_id: str) -> Dict[str, Any]:
        plant = self.plants.find_one({"_id": object_id(item_id, "Plant")})
        if not plant:
            raise NotFound("Plant not found")
        return plant

    def get_price(self, item_id: str) -> float:
        """Authoritative unit price of a plant"""
        return float(self.get(item_id)["price"])

    def line_total(self, item_id: str, quantity: int) -> Decimal:
        """Exact quantity x unit price; orders and payment quotes both use this"""
        return Decimal(str(self.get_price(item_id))) * quantity

    def decrement(self, item_id: str, amount: int) -> Dict[str, Any]:
        _check_amount(amount)
        oid = object_id(item_id, "Plant")
        updated = self.plants.find_one_and_update(
            {"_id": oid, "quantity": {"$gte": amount}},
            {"$inc": {"quantity": -amount}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            if self.plants.find_one({"_id": oid}, {"_id": 1}) is None:
                raise NotFound("Plant not found")
            raise Conflict("Insufficient stock")
        logger.info("Plant %s stock -%d -> %d", item_id, amount, updated["quantity"])
        return updated

    def increment(self, item_id: str, amount: int) -> Dict[str, Any]:
        _check_amount(amount)
        updated = self.plants.find_one_and_update(
            {"_id": object_id(item_id, "Plant")},
            {"$inc": {"quantity": amount}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFound("Plant not found")
        logger.info("Plant %s stock +%d -> %d", item_id, amount, updated["quantity"])
        return updated


class PlantCatalog:
    """Create/read/delete of plants; stock changes go through InventoryLedger."""

    def __init__(self, plants):
        self.plants = plants

    def add(self, seller: Dict[str, Any], plant: Plant) -> str:
        owner = SellerInfo(email=seller["email"], name=seller.get("name"), image=seller.get("image"))
        data = plant.model_copy(update={"seller": owner})
        plant_id = create_document(self.plants.name, data, database=self.plants.database)
        logger.info("Seller %s added plant %s", owner.email, plant_id)
        return plant_id

    def list_all(self) -> List[Dict[str, Any]]:
        return get_documents(self.plants.name, database=self.plants.database)

    def get(self, plant_id: str) -> Dict[str, Any]:
        plant = self.plants.find_one({"_id": object_id(plant_id, "Plant")})
        if not plant:
            raise NotFound("Plant not found")
        return plant

    def for_seller(self, email: str) -> List[Dict[str, Any]]:
        return get_documents(self.plants.name, {"seller.email": email}, database=self.plants.database)

    def remove(self, seller_email: str, plant_id: str) -> Dict[str, Any]:
        res = self.plants.delete_one({"_id": object_id(plant_id, "Plant"), "seller.email": seller_email})
        if res.deleted_count == 0:
            raise NotFound("Plant not found")
        logger.info("Seller %s deleted plant %s", seller_email, plant_id)
        return {"deletedCount": res.deleted_count}
