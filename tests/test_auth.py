from datetime import datetime, timedelta

import pytest
from jose import jwt

from clinigoal import config
from clinigoal.auth import service
from clinigoal.auth.security import ROLE_ADMIN, create_access_token, decode_access_token
from clinigoal.create_admin import upsert_admin
from clinigoal.errors import Unauthorized


async def register(client, email="asha@clinigoal.com", password="secret123", name="Asha"):
    return await client.post("/api/auth/register", json={
        "name": name, "email": email, "password": password
    })


# ==================== REGISTER / LOGIN ====================

async def test_register_returns_token_and_hides_credentials(client):
    response = await register(client)

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["user_id"].startswith("USR_")
    assert body["user"]["email"] == "asha@clinigoal.com"
    assert "password_hash" not in body["user"]
    assert "otp" not in body["user"]

    claims = decode_access_token(body["access_token"])
    assert claims["sub"] == body["user"]["user_id"]
    assert claims["role"] == "user"


async def test_register_stores_a_hash_not_the_password(client, db):
    await register(client)

    user = await db.users.find_one({"email": "asha@clinigoal.com"})
    assert user["password_hash"] != "secret123"
    assert user["password_hash"].startswith("$2")


async def test_duplicate_email_conflicts(client):
    await register(client)
    response = await register(client, email="ASHA@clinigoal.com")

    assert response.status_code == 409
    assert response.json() == {"message": "User already exists"}


async def test_register_validation_errors_are_400(client):
    response = await register(client, email="not-an-email")
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "email"

    response = await register(client, password="123")
    assert response.status_code == 400


async def test_login_on_both_paths(client):
    await register(client)

    for path in ("/api/auth/login", "/api/user/login"):
        response = await client.post(path, json={"email": "asha@clinigoal.com", "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["access_token"]


async def test_login_with_wrong_password_is_401(client):
    await register(client)

    response = await client.post("/api/auth/login", json={"email": "asha@clinigoal.com", "password": "nope123"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid email or password"}

    response = await client.post("/api/auth/login", json={"email": "ghost@clinigoal.com", "password": "nope123"})
    assert response.status_code == 401


# ==================== PROFILE ====================

async def test_read_and_update_profile(client):
    token = (await register(client)).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    response = await client.get("/api/users/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Asha"

    response = await client.put("/api/users/me", json={"name": "Asha K"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Asha K"
    assert response.json()["email"] == "asha@clinigoal.com"


async def test_profile_requires_a_user_token(client, admin_headers):
    response = await client.get("/api/users/me")
    assert response.status_code == 401

    response = await client.get("/api/users/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid or Expired Token"}

    response = await client.get("/api/users/me", headers=admin_headers)
    assert response.status_code == 403


def test_decode_rejects_foreign_and_expired_tokens():
    foreign = jwt.encode({"sub": "USR_1", "role": "user"}, "some-other-secret", algorithm="HS256")
    with pytest.raises(Unauthorized):
        decode_access_token(foreign)

    expired = jwt.encode(
        {"sub": "USR_1", "role": "user", "exp": datetime.utcnow() - timedelta(minutes=1)},
        config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM
    )
    with pytest.raises(Unauthorized):
        decode_access_token(expired)

    assert decode_access_token(create_access_token("USR_1", "user"))["sub"] == "USR_1"


# ==================== OTP RESET ====================

async def test_user_password_reset_flow(client, db, mailer):
    await register(client)

    response = await client.post("/api/forgot-password/send-otp", json={"email": "asha@clinigoal.com"})
    assert response.status_code == 200
    assert response.json() == {"message": "OTP sent to your email"}

    user = await db.users.find_one({"email": "asha@clinigoal.com"})
    otp = user["otp"]
    assert len(otp) == 6 and otp.isdigit()
    assert mailer.sent[0]["to"] == "asha@clinigoal.com"
    assert otp in mailer.sent[0]["html"]

    wrong = "000000" if otp != "000000" else "111111"
    response = await client.post("/api/forgot-password/verify-otp", json={"email": "asha@clinigoal.com", "otp": wrong})
    assert response.status_code == 400
    assert response.json() == {"message": "Invalid OTP"}

    response = await client.post("/api/forgot-password/verify-otp", json={"email": "asha@clinigoal.com", "otp": otp})
    assert response.status_code == 200

    response = await client.post("/api/forgot-password/reset", json={
        "email": "asha@clinigoal.com", "otp": otp, "new_password": "brandnew1"
    })
    assert response.status_code == 200

    user = await db.users.find_one({"email": "asha@clinigoal.com"})
    assert user["otp"] is None

    response = await client.post("/api/auth/login", json={"email": "asha@clinigoal.com", "password": "secret123"})
    assert response.status_code == 401
    response = await client.post("/api/auth/login", json={"email": "asha@clinigoal.com", "password": "brandnew1"})
    assert response.status_code == 200

    # consumed by the reset
    response = await client.post("/api/forgot-password/reset", json={
        "email": "asha@clinigoal.com", "otp": otp, "new_password": "another1"
    })
    assert response.status_code == 400


async def test_non_ascii_otp_is_rejected_as_invalid(client):
    await register(client)
    await client.post("/api/forgot-password/send-otp", json={"email": "asha@clinigoal.com"})

    response = await client.post("/api/forgot-password/verify-otp", json={"email": "asha@clinigoal.com", "otp": "12345é"})
    assert response.status_code == 400
    assert response.json() == {"message": "Invalid OTP"}

    response = await client.post("/api/forgot-password/reset", json={
        "email": "asha@clinigoal.com", "otp": "１２３４５６", "new_password": "brandnew1"
    })
    assert response.status_code == 400


async def test_expired_otp_is_rejected(client, db):
    await register(client)
    await client.post("/api/forgot-password/send-otp", json={"email": "asha@clinigoal.com"})

    await db.users.update_one(
        {"email": "asha@clinigoal.com"},
        {"$set": {"otp_expires_at": datetime.utcnow() - timedelta(minutes=1)}}
    )
    otp = (await db.users.find_one({"email": "asha@clinigoal.com"}))["otp"]

    response = await client.post("/api/forgot-password/verify-otp", json={"email": "asha@clinigoal.com", "otp": otp})
    assert response.status_code == 400
    assert response.json() == {"message": "OTP expired"}


async def test_send_otp_to_unknown_email_is_404(client):
    response = await client.post("/api/forgot-password/send-otp", json={"email": "ghost@clinigoal.com"})
    assert response.status_code == 404


async def test_send_otp_reports_mail_failure(client, mailer):
    await register(client)
    mailer.ok = False

    response = await client.post("/api/forgot-password/send-otp", json={"email": "asha@clinigoal.com"})
    assert response.status_code == 500
    assert response.json() == {"message": "Failed to send OTP"}


def test_generated_otp_shape():
    for _ in range(50):
        otp = service.generate_otp()
        assert len(otp) == 6
        assert otp[0] != "0"


# ==================== ADMINS ====================

async def test_admin_login_and_reset(client, db, mailer):
    assert await upsert_admin(db, "Admin@clinigoal.com", "adminpass") == "created"

    response = await client.post("/api/admin/login", json={"email": "admin@clinigoal.com", "password": "adminpass"})
    assert response.status_code == 200
    body = response.json()
    assert body["admin"]["admin_id"].startswith("ADM_")
    assert decode_access_token(body["access_token"])["role"] == ROLE_ADMIN

    # a learner login does not see admin accounts
    response = await client.post("/api/auth/login", json={"email": "admin@clinigoal.com", "password": "adminpass"})
    assert response.status_code == 401

    response = await client.post("/api/admin/forgot-password/send-otp", json={"email": "admin@clinigoal.com"})
    assert response.status_code == 200
    otp = (await db.admins.find_one({"email": "admin@clinigoal.com"}))["otp"]

    response = await client.post("/api/admin/forgot-password/reset", json={
        "email": "admin@clinigoal.com", "otp": otp, "new_password": "rotated99"
    })
    assert response.status_code == 200

    response = await client.post("/api/admin/login", json={"email": "admin@clinigoal.com", "password": "rotated99"})
    assert response.status_code == 200


async def test_upsert_admin_resets_existing_password(client, db):
    await upsert_admin(db, "admin@clinigoal.com", "first-pass")
    assert await upsert_admin(db, "admin@clinigoal.com", "second-pass") == "updated"
    assert await db.admins.count_documents({}) == 1

    response = await client.post("/api/admin/login", json={"email": "admin@clinigoal.com", "password": "second-pass"})
    assert response.status_code == 200
