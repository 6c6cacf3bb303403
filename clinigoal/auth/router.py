from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from clinigoal.auth import service
from clinigoal.auth.mailer import get_mailer
from clinigoal.auth.models import (
    LoginRequest, ProfileUpdate, RegisterRequest,
    ResetPasswordRequest, SendOtpRequest, VerifyOtpRequest
)
from clinigoal.auth.security import ROLE_ADMIN, ROLE_USER, get_current_user
from clinigoal.database import get_db

router = APIRouter(tags=["Authentication"])


# ==================== USERS ====================

@router.post("/api/auth/register", status_code=201)
@router.post("/api/user/register", status_code=201)
async def register(data: RegisterRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Register a learner and return a session token
    """
    await service.create_account(
        db, ROLE_USER, data.email, data.password, name=data.name, photo=data.photo
    )
    return await service.authenticate(db, ROLE_USER, data.email, data.password)


@router.post("/api/auth/login")
@router.post("/api/user/login")
async def login(data: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.authenticate(db, ROLE_USER, data.email, data.password)


@router.get("/api/users/me")
async def read_current_user(user: dict = Depends(get_current_user)):
    return service.public_account(user)


@router.put("/api/users/me")
async def update_current_user(
    data: ProfileUpdate,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_profile(db, user["user_id"], data.model_dump())


# ==================== ADMINS ====================

@router.post("/api/admin/login")
async def admin_login(data: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.authenticate(db, ROLE_ADMIN, data.email, data.password)


# ==================== OTP RESET ====================

def build_otp_router(kind: str, prefix: str) -> APIRouter:
    """Same three-step reset flow for each identity kind"""
    otp_router = APIRouter(prefix=prefix, tags=["Password Reset"])

    @otp_router.post("/send-otp")
    async def send_otp(
        data: SendOtpRequest,
        db: AsyncIOMotorDatabase = Depends(get_db),
        mailer=Depends(get_mailer)
    ):
        return await service.send_otp(db, kind, data.email, mailer)

    @otp_router.post("/verify-otp")
    async def verify_otp(data: VerifyOtpRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
        return await service.verify_otp(db, kind, data.email, data.otp)

    @otp_router.post("/reset")
    async def reset_password(data: ResetPasswordRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
        return await service.reset_password(db, kind, data.email, data.otp, data.new_password)

    return otp_router


router.include_router(build_otp_router(ROLE_USER, "/api/forgot-password"))
router.include_router(build_otp_router(ROLE_ADMIN, "/api/admin/forgot-password"))
