import logging
import os
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import stripe

from errors import Invalid, PaymentFailed
from inventory import InventoryLedger

logger = logging.getLogger(__name__)

STRIPE_SECRET = os.getenv("STRIPE_SECRET_KEY", "")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")


def to_minor_units(amount: float) -> int:
    # Stripe expects the amount in the smallest currency unit (cents)
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentReconciliation:
    """Charge amounts are always derived from the catalog price, never from the client."""

    def __init__(self, ledger: InventoryLedger, api_key: Optional[str] = None, currency: str = PAYMENT_CURRENCY):
        self.ledger = ledger
        self.api_key = STRIPE_SECRET if api_key is None else api_key
        self.currency = currency

    def quote(self, item_id: str, total_quantity: int) -> int:
        if total_quantity < 1:
            raise Invalid("Quantity must be at least 1")
        return to_minor_units(self.ledger.line_total(item_id, total_quantity))

    def create_intent(self, item_id: str, total_quantity: int) -> Dict[str, Any]:
        amount = self.quote(item_id, total_quantity)
        if not self.api_key:
            # Simulate for local development when Stripe is not configured
            logger.info("Stripe not configured, simulating intent for %d %s", amount, self.currency)
            return {"clientSecret": None, "amount": amount, "currency": self.currency, "payment_simulated": True}
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount,
                currency=self.currency,
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error("Stripe rejected payment intent for plant %s: %s", item_id, e)
            raise PaymentFailed("Payment provider error")
        logger.info("Payment intent %s created for %d %s", intent.id, amount, self.currency)
        return {"clientSecret": intent.client_secret, "amount": amount, "currency": self.currency}
