import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from clinigoal import config
from clinigoal.auth.security import (
    ROLE_ADMIN, ROLE_USER, create_access_token, hash_password, verify_password
)
from clinigoal.database import generate_id
from clinigoal.errors import Conflict, InternalError, InvalidCredentials, NotFound, ValidationError

logger = logging.getLogger(__name__)

# User and Admin share one credential/OTP flow over separate collections
IDENTITIES = {
    ROLE_USER: {"collection": "users", "id_field": "user_id", "prefix": "USR", "label": "User"},
    ROLE_ADMIN: {"collection": "admins", "id_field": "admin_id", "prefix": "ADM", "label": "Admin"},
}

PRIVATE_FIELDS = ("_id", "password_hash", "otp", "otp_expires_at")


def _identity(kind: str) -> dict:
    try:
        return IDENTITIES[kind]
    except KeyError:
        raise ValueError(f"Unknown identity kind: {kind}")


def _collection(db: AsyncIOMotorDatabase, kind: str):
    return db[_identity(kind)["collection"]]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def public_account(doc: dict) -> dict:
    """Strip credentials before an account leaves the service"""
    return {k: v for k, v in doc.items() if k not in PRIVATE_FIELDS}


# ==================== REGISTRATION / LOGIN ====================

async def create_account(
    db: AsyncIOMotorDatabase,
    kind: str,
    email: str,
    password: str,
    name: Optional[str] = None,
    photo: Optional[str] = None
) -> dict:
    identity = _identity(kind)
    col = _collection(db, kind)
    email = normalize_email(email)

    if await col.find_one({"email": email}):
        raise Conflict(f"{identity['label']} already exists")

    now = datetime.utcnow()
    account = {
        identity["id_field"]: generate_id(identity["prefix"]),
        "email": email,
        "password_hash": hash_password(password),
        "otp": None,
        "otp_expires_at": None,
        "created_at": now,
        "updated_at": now,
    }
    if kind == ROLE_USER:
        account.update({"name": name, "photo": photo, "role": "student"})

    try:
        await col.insert_one(account)
    except DuplicateKeyError:
        raise Conflict(f"{identity['label']} already exists")

    logger.info("Created %s account %s", kind, account[identity["id_field"]])
    return public_account(account)


async def authenticate(db: AsyncIOMotorDatabase, kind: str, email: str, password: str) -> dict:
    """Check credentials and issue a signed session token"""
    identity = _identity(kind)
    account = await _collection(db, kind).find_one({"email": normalize_email(email)})

    if not account or not verify_password(password, account.get("password_hash")):
        raise InvalidCredentials()

    token = create_access_token(account[identity["id_field"]], kind)
    return {
        "access_token": token,
        "token_type": "bearer",
        kind: public_account(account),
    }


async def update_profile(db: AsyncIOMotorDatabase, user_id: str, data: dict) -> dict:
    updates = {k: v for k, v in data.items() if v is not None}
    updates["updated_at"] = datetime.utcnow()

    await db.users.update_one({"user_id": user_id}, {"$set": updates})

    user = await db.users.find_one({"user_id": user_id})
    if not user:
        raise NotFound("User not found")
    return public_account(user)


# ==================== OTP RESET ====================

def generate_otp() -> str:
    """Six digit numeric code without a leading zero"""
    low = 10 ** (config.OTP_LENGTH - 1)
    return str(low + secrets.randbelow(9 * low))


def otp_email_html(otp: str) -> str:
    return (
        "<h2>Password Reset Request</h2>"
        "<p>Hello,</p>"
        f"<p>Your OTP for password reset is: <b>{otp}</b></p>"
        f"<p>This OTP will expire in <b>{config.OTP_EXPIRY_MINUTES} minutes</b>.</p>"
        "<br/><p>Regards,<br/>Clinigoal Team</p>"
    )


async def _get_account(db: AsyncIOMotorDatabase, kind: str, email: str) -> dict:
    account = await _collection(db, kind).find_one({"email": normalize_email(email)})
    if not account:
        raise NotFound(f"{_identity(kind)['label']} not found")
    return account


def _check_otp(account: dict, otp: str):
    stored = account.get("otp")
    expires_at = account.get("otp_expires_at")

    if not stored or not expires_at:
        raise ValidationError("No OTP requested for this email")
    # bytes: compare_digest refuses non-ASCII str
    if not hmac.compare_digest(stored.encode(), otp.strip().encode()):
        raise ValidationError("Invalid OTP")
    if datetime.utcnow() > expires_at:
        raise ValidationError("OTP expired")


async def send_otp(db: AsyncIOMotorDatabase, kind: str, email: str, mailer) -> dict:
    """Issue a fresh OTP, persist it on the account and mail it"""
    account = await _get_account(db, kind, email)

    otp = generate_otp()
    expires_at = datetime.utcnow() + timedelta(minutes=config.OTP_EXPIRY_MINUTES)

    await _collection(db, kind).update_one(
        {"email": account["email"]},
        {"$set": {"otp": otp, "otp_expires_at": expires_at}}
    )

    sent = await mailer.send(account["email"], "Clinigoal Password Reset OTP", otp_email_html(otp))
    if not sent:
        raise InternalError("Failed to send OTP")

    logger.info("OTP issued for %s account %s", kind, account["email"])
    return {"message": "OTP sent to your email"}


async def verify_otp(db: AsyncIOMotorDatabase, kind: str, email: str, otp: str) -> dict:
    """Check the OTP without consuming it; reset consumes it"""
    account = await _get_account(db, kind, email)
    _check_otp(account, otp)
    return {"message": "OTP verified"}


async def reset_password(
    db: AsyncIOMotorDatabase,
    kind: str,
    email: str,
    otp: str,
    new_password: str
) -> dict:
    account = await _get_account(db, kind, email)
    _check_otp(account, otp)

    await _collection(db, kind).update_one(
        {"email": account["email"]},
        {"$set": {
            "password_hash": hash_password(new_password),
            "otp": None,
            "otp_expires_at": None,
            "updated_at": datetime.utcnow()
        }}
    )

    logger.info("Password reset for %s account %s", kind, account["email"])
    return {"message": "Password reset successfully"}
