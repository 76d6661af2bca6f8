import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from errors import Conflict, Forbidden, NotFound
from schemas import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """User records keyed by email, backed by the `user` collection."""

    def __init__(self, users):
        self.users = users

    def get(self, email: str) -> Optional[Dict[str, Any]]:
        return self.users.find_one({"email": email})

    def create(self, email: str, name: Optional[str] = None, image: Optional[str] = None) -> Dict[str, Any]:
        """Create a Customer on first sign-in; an existing record is returned untouched."""
        user = User(email=email, name=name, image=image)
        now = datetime.now(timezone.utc)
        doc = {**user.model_dump(exclude={"email"}, exclude_none=True), "created_at": now, "updated_at": now}
        # $setOnInsert makes a repeated sign-in a no-op even when two race;
        # email comes from the filter on insert
        result = self.users.update_one({"email": user.email}, {"$setOnInsert": doc}, upsert=True)
        if result.upserted_id is not None:
            logger.info("Created user %s", user.email)
        return self.users.find_one({"email": user.email})

    def role_of(self, email: str) -> Optional[str]:
        user = self.get(email)
        return user.get("role") if user else None

    def list_except(self, email: str) -> List[Dict[str, Any]]:
        return list(self.users.find({"email": {"$ne": email}}))

    def request_seller(self, caller_email: str, email: str) -> Dict[str, Any]:
        if caller_email != email:
            raise Forbidden("You can only request seller status for your own account")
        user = self.get(email)
        if not user:
            raise NotFound("User not found")
        if user.get("role") != "Customer":
            raise Conflict("Only customers can request seller status")
        result = self.users.update_one(
            {"email": email, "status": {"$ne": "Requested"}},
            {"$set": {"status": "Requested", "updated_at": datetime.now(timezone.utc)}},
        )
        if result.modified_count == 0:
            raise Conflict("You have already requested to become a seller. Please wait for approval")
        logger.info("Seller status requested by %s", email)
        return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}

    def set_role(self, email: str, role: str) -> Dict[str, Any]:
        result = self.users.update_one(
            {"email": email},
            {"$set": {"role": role, "status": "verified", "updated_at": datetime.now(timezone.utc)}},
        )
        if result.matched_count == 0:
            raise NotFound("User not found")
        logger.info("Role of %s set to %s", email, role)
        return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}
