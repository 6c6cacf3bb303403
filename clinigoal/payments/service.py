"""
Payment approval workflow

State machine: Pending -> Approved | Rejected. Both outcomes are terminal;
repeating the same transition is a no-op, the opposite one is a Conflict.
"""

import logging
import time
from datetime import datetime
from typing import List, Optional

import razorpay
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from clinigoal import config
from clinigoal.database import generate_id, serialize_many, serialize_mongo
from clinigoal.errors import Conflict, InternalError, NotFound, ValidationError
from clinigoal.payments.models import PaymentStatus

logger = logging.getLogger(__name__)


def to_minor_units(amount: float) -> int:
    """Rupees -> paise"""
    return int(round(amount * 100))


# ==================== ORDERS ====================

async def create_order(gateway, amount: float, course_id: str, user_id: str) -> dict:
    """Pass-through to the gateway; nothing is stored locally"""
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")

    receipt = f"receipt_{int(time.time() * 1000)}"
    try:
        order_id = await gateway.create_order(
            to_minor_units(amount),
            config.PAYMENT_CURRENCY,
            receipt,
            notes={"course_id": course_id, "user_id": user_id},
        )
    except razorpay.errors.BadRequestError as e:
        raise ValidationError(f"Payment gateway rejected the order: {e}")
    except Exception:
        logger.exception("❌ Order creation failed for user %s course %s", user_id, course_id)
        raise InternalError("Failed to create payment order")

    logger.info("Order %s created for user %s course %s", order_id, user_id, course_id)
    return {
        "order_id": order_id,
        "amount": amount,
        "currency": config.PAYMENT_CURRENCY,
        "key_id": getattr(gateway, "key_id", None),
    }


# ==================== PAYMENT RECORDS ====================

async def has_approved_payment(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> bool:
    payment = await db.payments.find_one({
        "user_id": user_id,
        "course_id": course_id,
        "status": PaymentStatus.APPROVED.value
    })
    return payment is not None


async def record_payment(
    db: AsyncIOMotorDatabase,
    user_id: str,
    course_id: str,
    amount: float,
    transaction_id: Optional[str] = None,
    order_id: Optional[str] = None,
    signature: Optional[str] = None,
    gateway=None
) -> dict:
    """
    Insert a Pending payment for admin review

    Several Pending records for one pair are allowed; a new record is
    refused once the pair already has an Approved payment.
    """
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")

    if order_id and signature and transaction_id:
        if gateway is None or not gateway.verify_signature(order_id, transaction_id, signature):
            raise ValidationError("Invalid payment signature")

    if await has_approved_payment(db, user_id, course_id):
        raise Conflict("An approved payment already exists for this course")

    payment = {
        "payment_id": generate_id("PAY"),
        "user_id": user_id,
        "course_id": course_id,
        "amount": amount,
        "currency": config.PAYMENT_CURRENCY,
        "transaction_id": transaction_id,
        "order_id": order_id,
        "signature_verified": bool(order_id and signature and transaction_id),
        "status": PaymentStatus.PENDING.value,
        "created_at": datetime.utcnow(),
        "approved_at": None,
        "approved_by": None,
        "rejected_at": None,
        "rejected_by": None,
        "rejection_reason": None,
    }
    await db.payments.insert_one(payment)

    logger.info("Payment %s recorded for user %s course %s", payment["payment_id"], user_id, course_id)
    return serialize_mongo(payment)


async def get_payment(db: AsyncIOMotorDatabase, payment_id: str) -> dict:
    payment = await db.payments.find_one({"payment_id": payment_id})
    if not payment:
        raise NotFound("Payment not found")
    return serialize_mongo(payment)


async def _transition(
    db: AsyncIOMotorDatabase,
    payment_id: str,
    target: PaymentStatus,
    updates: dict
) -> dict:
    """
    Atomically move a Pending payment to `target`

    The unique partial index on Approved payments refuses a second
    approval for the same (user, course).
    """
    try:
        payment = await db.payments.find_one_and_update(
            {"payment_id": payment_id, "status": PaymentStatus.PENDING.value},
            {"$set": {"status": target.value, **updates}},
            return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise Conflict("An approved payment already exists for this course")
    if payment:
        logger.info("Payment %s -> %s", payment_id, target.value)
        return serialize_mongo(payment)

    current = await get_payment(db, payment_id)
    if current["status"] == target.value:
        return current

    raise Conflict(f"Payment already {current['status'].lower()}")


async def approve_payment(db: AsyncIOMotorDatabase, payment_id: str, actor: Optional[str] = None) -> dict:
    return await _transition(db, payment_id, PaymentStatus.APPROVED, {
        "approved_at": datetime.utcnow(),
        "approved_by": actor,
    })


async def reject_payment(
    db: AsyncIOMotorDatabase,
    payment_id: str,
    reason: Optional[str] = None,
    actor: Optional[str] = None
) -> dict:
    return await _transition(db, payment_id, PaymentStatus.REJECTED, {
        "rejected_at": datetime.utcnow(),
        "rejected_by": actor,
        "rejection_reason": reason,
    })


async def list_payments(db: AsyncIOMotorDatabase, status: Optional[PaymentStatus] = None) -> List[dict]:
    query = {"status": status.value} if status else {}
    cursor = db.payments.find(query).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))


async def list_user_payments(db: AsyncIOMotorDatabase, user_id: str) -> List[dict]:
    cursor = db.payments.find({"user_id": user_id}).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))
