from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from clinigoal.auth.security import require_admin
from clinigoal.database import get_db
from clinigoal.payments import service
from clinigoal.payments.gateway import get_payment_gateway
from clinigoal.payments.models import (
    ApprovePaymentRequest, CreateOrderRequest, PaymentStatus,
    RecordPaymentRequest, RejectPaymentRequest
)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.post("/create-order")
async def create_order(data: CreateOrderRequest, gateway=Depends(get_payment_gateway)):
    """
    Create a Razorpay order for the client checkout
    """
    return await service.create_order(gateway, data.amount, data.course_id, data.user_id)


@router.post("", status_code=201)
async def record_payment(
    data: RecordPaymentRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway=Depends(get_payment_gateway)
):
    """
    Record a completed checkout as a Pending payment awaiting admin approval
    """
    return await service.record_payment(
        db,
        data.user_id,
        data.course_id,
        data.amount,
        transaction_id=data.transaction_id,
        order_id=data.order_id,
        signature=data.signature,
        gateway=gateway,
    )


@router.post("/approve")
async def approve_payment(
    data: ApprovePaymentRequest,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.approve_payment(db, data.payment_id, actor=admin["sub"])


@router.post("/reject")
async def reject_payment(
    data: RejectPaymentRequest,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.reject_payment(db, data.payment_id, data.reason, actor=admin["sub"])


@router.get("/all", dependencies=[Depends(require_admin)])
async def list_all_payments(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.list_payments(db)


@router.get("/pending", dependencies=[Depends(require_admin)])
async def list_pending_payments(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.list_payments(db, PaymentStatus.PENDING)


@router.get("/user/{user_id}")
async def list_user_payments(user_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.list_user_payments(db, user_id)
