"""
Reporting views over orders.

Orders are joined with their plant (name, category, image flattened in) and
summarised for the admin dashboard. Nothing here writes.
"""
import logging
from typing import Any, Dict, Iterable, List

from bson import ObjectId

logger = logging.getLogger(__name__)

PLANT_FIELDS = ("name", "category", "image")


class ReportingAggregator:
    def __init__(self, users, plants, orders):
        self.users = users
        self.plants = plants
        self.orders = orders

    def _enrich(self, orders: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        orders = list(orders)
        ids = {ObjectId(o["plant_id"]) for o in orders if ObjectId.is_valid(o.get("plant_id"))}
        projection = {field: 1 for field in PLANT_FIELDS}
        plants = {p["_id"]: p for p in self.plants.find({"_id": {"$in": list(ids)}}, projection)}

        enriched = []
        for order in orders:
            plant = plants.get(ObjectId(order["plant_id"])) if ObjectId.is_valid(order.get("plant_id")) else None
            if plant is None:
                # plant was removed from the catalog; the order drops out of the view
                continue
            enriched.append({**order, **{field: plant.get(field) for field in PLANT_FIELDS}})
        return enriched

    def orders_for_customer(self, email: str) -> List[Dict[str, Any]]:
        return self._enrich(self.orders.find({"customer.email": email}).sort("created_at", -1))

    def orders_for_seller(self, email: str) -> List[Dict[str, Any]]:
        return self._enrich(self.orders.find({"seller_email": email}).sort("created_at", -1))

    def admin_summary(self) -> Dict[str, Any]:
        totals = list(self.orders.aggregate([
            {"$group": {"_id": None, "totalRevenue": {"$sum": "$price"}, "totalOrders": {"$sum": 1}}},
        ]))
        chart = self.orders.aggregate([
            {"$group": {
                "_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$created_at"}},
                "totalOrders": {"$sum": 1},
                "totalRevenue": {"$sum": "$price"},
                "totalQuantity": {"$sum": "$quantity"},
            }},
            {"$sort": {"_id": -1}},
        ])
        summary = totals[0] if totals else {}

        return {
            "totalUsers": self.users.count_documents({}),
            "totalPlants": self.plants.count_documents({}),
            "totalRevenue": round(summary.get("totalRevenue", 0), 2),
            "totalOrders": summary.get("totalOrders", 0),
            "chartData": [
                {
                    "date": bucket["_id"],
                    "totalOrders": bucket["totalOrders"],
                    "totalRevenue": round(bucket["totalRevenue"], 2),
                    "totalQuantity": bucket["totalQuantity"],
                }
                for bucket in chart
            ],
        }
