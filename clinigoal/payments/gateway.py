"""
Razorpay order creation and signature checks
"""

import asyncio
import hashlib
import hmac
import logging
from functools import lru_cache
from typing import Optional

import razorpay

from clinigoal import config

logger = logging.getLogger(__name__)


class RazorpayGateway:
    def __init__(self, key_id: Optional[str], key_secret: Optional[str]):
        self.key_id = key_id
        self.key_secret = key_secret
        self.client = razorpay.Client(auth=(key_id, key_secret))

    async def create_order(self, amount: int, currency: str, receipt: str, notes: Optional[dict] = None) -> str:
        """Create an order for `amount` in the smallest currency unit and return its id"""
        order_data = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        # SDK is synchronous
        order = await asyncio.to_thread(self.client.order.create, data=order_data)
        return order["id"]

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Verify Razorpay payment signature"""
        if not self.key_secret:
            logger.warning("Signature check skipped: RAZORPAY_KEY_SECRET is not configured")
            return False

        message = f"{order_id}|{payment_id}"
        generated_signature = hmac.new(
            self.key_secret.encode(),
            message.encode(),
            hashlib.sha256
        ).hexdigest()
        return hmac.compare_digest(generated_signature, signature)


@lru_cache()
def get_payment_gateway() -> RazorpayGateway:
    return RazorpayGateway(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET)
