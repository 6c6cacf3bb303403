from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

# ==================== ENUMS ====================

class PaymentStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# ==================== REQUEST MODELS ====================

class CreateOrderRequest(BaseModel):
    amount: float = Field(..., gt=0)  # rupees
    course_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)


class RecordPaymentRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    # gateway payment id, e.g. pay_XXXX from Razorpay
    transaction_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("transaction_id", "payment_id")
    )
    order_id: Optional[str] = None
    signature: Optional[str] = None


class ApprovePaymentRequest(BaseModel):
    payment_id: str = Field(..., min_length=1)


class RejectPaymentRequest(BaseModel):
    payment_id: str = Field(..., min_length=1)
    reason: Optional[str] = None
