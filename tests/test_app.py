from clinigoal.auth.mailer import BrevoMailer
from clinigoal.database import generate_id, get_db, serialize_mongo
from clinigoal.main import app


class PingDB:
    def __init__(self, ok=True):
        self.ok = ok

    async def command(self, name):
        if not self.ok:
            raise ConnectionError("connection refused")
        return {"ok": 1.0}


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Clinigoal backend is running"}


async def test_health_reports_database_state(client):
    app.dependency_overrides[get_db] = lambda: PingDB()
    response = await client.get("/api/health")
    assert response.json() == {"backend": "UP", "database": "UP"}

    app.dependency_overrides[get_db] = lambda: PingDB(ok=False)
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"backend": "UP", "database": "DOWN"}


async def test_unknown_route_uses_message_body(client):
    response = await client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"message": "Not Found"}


def test_generate_id():
    first, second = generate_id("CRS"), generate_id("CRS")
    assert first.startswith("CRS_") and len(first) == len("CRS_") + 16
    assert first != second


def test_serialize_mongo_drops_object_id():
    assert serialize_mongo({"_id": object(), "course_id": "CRS_1"}) == {"course_id": "CRS_1"}
    assert serialize_mongo(None) is None


async def test_mailer_without_api_key_reports_failure():
    mailer = BrevoMailer(api_key=None, sender_email="no-reply@clinigoal.com", sender_name="Clinigoal")
    assert await mailer.send("asha@clinigoal.com", "Hi", "<p>Hi</p>") is False
