"""
Natours Backend — Tour Route Tests
====================================

What we test:
    ✅ Create → 201 envelope with camelCase fields and derived slug
    ✅ List filters: equality, operators, whitelisted arrays, sort, fields, paging
    ✅ top-5-cheap alias
    ✅ Get / update / delete, 404 for unknown ids
    ✅ Duplicate names → 400 duplicate field message
    ✅ Secret tours are never listed
"""

import uuid

import pytest

TOURS = [
    ("The Forest Hiker", 5, "easy", 397, 4.7),
    ("The Sea Explorer", 7, "medium", 497, 4.8),
    ("The Snow Adventurer", 4, "difficult", 997, 4.5),
    ("The City Wanderer", 9, "easy", 1197, 4.9),
    ("The Park Camper", 10, "medium", 1497, 4.6),
    ("The Sports Lover", 14, "difficult", 2997, 4.3),
]


async def create_tour(client, base, **overrides):
    payload = {**base, **overrides}
    response = await client.post("/api/v1/tours", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]["tour"]


async def seed(client, base):
    return [
        await create_tour(
            client, base,
            name=name, duration=duration, difficulty=difficulty,
            price=price, ratingsAverage=rating,
        )
        for name, duration, difficulty, price, rating in TOURS
    ]


class TestCreateTour:

    @pytest.mark.asyncio
    async def test_create_returns_envelope(self, test_client, tour_payload):
        response = await test_client.post("/api/v1/tours", json=tour_payload)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        tour = body["data"]["tour"]
        assert tour["slug"] == "the-forest-hiker"
        assert tour["maxGroupSize"] == 25
        assert tour["ratingsAverage"] == 4.5
        assert tour["ratingsQuantity"] == 0
        assert tour["durationWeeks"] == 0.71
        uuid.UUID(tour["id"])

    @pytest.mark.asyncio
    async def test_duplicate_name_is_400(self, test_client, tour_payload):
        await create_tour(test_client, tour_payload)
        response = await test_client.post("/api/v1/tours", json=tour_payload)
        assert response.status_code == 400
        assert response.json() == {
            "status": "fail",
            "message": "Duplicate field value. Please use another value!",
        }

    @pytest.mark.asyncio
    async def test_discount_must_be_below_price(self, test_client, tour_payload):
        response = await test_client.post(
            "/api/v1/tours", json={**tour_payload, "priceDiscount": 500}
        )
        assert response.status_code == 400
        assert "should be below regular price" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_unknown_difficulty_rejected(self, test_client, tour_payload):
        response = await test_client.post(
            "/api/v1/tours", json={**tour_payload, "difficulty": "extreme"}
        )
        assert response.status_code == 400


class TestListTours:

    @pytest.mark.asyncio
    async def test_list_all(self, test_client, tour_payload):
        await seed(test_client, tour_payload)
        response = await test_client.get("/api/v1/tours")
        body = response.json()
        assert body["status"] == "success"
        assert body["results"] == 6
        assert body["requestedAt"].endswith("Z")

    @pytest.mark.asyncio
    async def test_equality_filter(self, test_client, tour_payload):
        await seed(test_client, tour_payload)
        body = (await test_client.get("/api/v1/tours?difficulty=easy")).json()
        assert {t["name"] for t in body["data"]["tours"]} == {"The Forest Hiker", "The City Wanderer"}

    @pytest.mark.asyncio
    async def test_operator_filters(self, test_client, tour_payload):
        await seed(test_client, tour_payload)
        body = (await test_client.get("/api/v1/tours?price[lt]=1000&duration[gte]=5")).json()
        assert {t["name"] for t in body["data"]["tours"]} == {"The Forest Hiker", "The Sea Explorer"}

    @pytest.mark.asyncio
    async def test_duplicate_price_values_kept(self, test_client, tour_payload):
        await seed(test_client, tour_payload)
        body = (await test_client.get("/api/v1/tours?price=397&price=997")).json()
        assert sorted(t["price"] for t in body["data"]["tours"]) == [397, 997]

    @pytest.mark.asyncio
    async def test_duplicate_sort_collapses_to_last(self, test_client, tour_payload):
        await seed(test_client, tour_payload)
        body = (await test_client.get("/api/v1/tours?sort=-price&sort=price")).json()
        prices = [t["price"] for t in body["data"]["tours"]]
        assert prices == sorted(prices)

    @pytest.mark.asyncio
    async def test_field_limiting(self, test_client, tour_payload):
        await seed(test_client, tour_payload)
        body = (await test_client.get("/api/v1/tours?fields=name,price")).json()
        assert set(body["data"]["tours"][0]) == {"id", "name", "price"}

    @pytest.mark.asyncio
    async def test_pagination(self, test_client, tour_payload):
        await seed(test_client, tour_payload)
        body = (await test_client.get("/api/v1/tours?sort=price&page=2&limit=4")).json()
        assert [t["price"] for t in body["data"]["tours"]] == [1497, 2997]

    @pytest.mark.asyncio
    async def test_invalid_typed_value_is_400(self, test_client):
        response = await test_client.get("/api/v1/tours?price[lt]=cheap")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid price: cheap"

    @pytest.mark.asyncio
    async def test_secret_tours_hidden(self, test_client, tour_payload):
        secret = await create_tour(
            test_client, tour_payload, name="The Secret Valley", secretTour=True
        )
        body = (await test_client.get("/api/v1/tours")).json()
        assert body["results"] == 0
        response = await test_client.get(f"/api/v1/tours/{secret['id']}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_top_five_cheap(self, test_client, tour_payload):
        await seed(test_client, tour_payload)
        body = (await test_client.get("/api/v1/tours/top-5-cheap")).json()
        tours = body["data"]["tours"]
        assert body["results"] == 5
        assert [t["ratingsAverage"] for t in tours] == [4.9, 4.8, 4.7, 4.6, 4.5]
        assert set(tours[0]) == {"id", "name", "price", "ratingsAverage", "summary", "difficulty"}


class TestSingleTour:

    @pytest.mark.asyncio
    async def test_get_update_delete(self, test_client, tour_payload):
        tour = await create_tour(test_client, tour_payload)
        url = f"/api/v1/tours/{tour['id']}"

        assert (await test_client.get(url)).json()["data"]["tour"]["name"] == "The Forest Hiker"

        response = await test_client.patch(url, json={"name": "The Forest Runner", "price": 450})
        updated = response.json()["data"]["tour"]
        assert response.status_code == 200
        assert updated["slug"] == "the-forest-runner"
        assert updated["price"] == 450

        response = await test_client.delete(url)
        assert response.status_code == 204
        assert response.content == b""
        assert (await test_client.get(url)).status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_id_is_404(self, test_client):
        response = await test_client.get(f"/api/v1/tours/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"status": "fail", "message": "No tour found with that ID"}

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, test_client):
        response = await test_client.get("/api/v1/tours/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid input data. tour_id")

    @pytest.mark.asyncio
    async def test_update_discount_checked_against_stored_price(self, test_client, tour_payload):
        tour = await create_tour(test_client, tour_payload)
        response = await test_client.patch(
            f"/api/v1/tours/{tour['id']}", json={"priceDiscount": 400}
        )
        assert response.status_code == 400
