async def create_review(client, **overrides):
    body = {"user_id": "USR_1", "course_id": "CRS_1", "name": "Asha", "rating": 5, "text": "Very practical"}
    body.update(overrides)
    return await client.post("/api/reviews", json=body)


async def test_create_and_list_reviews(client):
    response = await create_review(client)
    assert response.status_code == 201
    review = response.json()
    assert review["review_id"].startswith("REV_")
    assert review["reply"] is None

    await create_review(client, course_id="CRS_2", rating=3)

    response = await client.get("/api/reviews")
    assert len(response.json()) == 2

    response = await client.get("/api/reviews", params={"course_id": "CRS_1"})
    assert [r["review_id"] for r in response.json()] == [review["review_id"]]


async def test_rating_must_be_one_to_five(client):
    assert (await create_review(client, rating=0)).status_code == 400
    assert (await create_review(client, rating=6)).status_code == 400
    assert (await create_review(client, text="")).status_code == 400


async def test_admin_reply(client, admin_headers):
    review_id = (await create_review(client)).json()["review_id"]

    response = await client.post(f"/api/reviews/{review_id}/reply", json={"reply": "Thank you!"})
    assert response.status_code == 401

    response = await client.post(
        f"/api/reviews/{review_id}/reply", json={"reply": "Thank you!"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["reply"] == "Thank you!"
    assert response.json()["replied_at"] is not None

    response = await client.get(f"/api/reviews/{review_id}")
    assert response.json()["reply"] == "Thank you!"


async def test_admin_delete(client, admin_headers, user_headers):
    review_id = (await create_review(client)).json()["review_id"]

    response = await client.delete(f"/api/reviews/{review_id}", headers=user_headers)
    assert response.status_code == 403

    response = await client.delete(f"/api/reviews/{review_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Review deleted successfully"}

    response = await client.delete(f"/api/reviews/{review_id}", headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"message": "Review not found"}
