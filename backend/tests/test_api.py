"""
Road Trip Planner Backend — HTTP API Tests
===========================================

What:  End-to-end tests through the FastAPI app (middleware, dependencies,
       exception handlers, routes) on an in-memory database.
How:   HTTPX AsyncClient over ASGITransport; every request gets its own
       session that commits on success, like production.

What we test:
    ✅ Register → create trip → like/comment/review → read back (camelCase wire format)
    ✅ Auth: missing/invalid token → 401, Bearer and x-auth-token both accepted
    ✅ Error envelope {message, error, requestId} and X-Request-ID echo
    ✅ Multipart create with an image, then GET /api/files/... serves it
    ✅ Ownership (403), private trips (404), 204 deletes
    ✅ Upload limits enforced while parsing (file count, file size)
    ✅ Huge page numbers return an empty page
    ✅ Account deletion removes stored trip images
    ✅ Weather/route endpoints with mocked providers
    ✅ /health
"""

import uuid

import httpx
import pytest

from roadtrip_api.services.directions_service import DirectionsService, get_directions_service
from roadtrip_api.services.weather_service import WeatherService, get_weather_service

PACIFIC_COAST = {
    "title": "Pacific Coast Highway",
    "description": "Cliffs, beaches and redwoods along Highway 1.",
    "route": [
        {"locationName": "San Francisco", "coordinates": {"latitude": 37.77, "longitude": -122.42}},
        {"locationName": "Big Sur", "attractions": ["McWay Falls"]},
        {"locationName": "Los Angeles"},
    ],
    "tags": ["coast", "scenic"],
    "difficulty": "Easy",
    "season": ["Summer"],
    "budget": {"min": 500, "max": 1500, "currency": "usd"},
}


class TestTripLifecycle:
    @pytest.mark.asyncio
    async def test_social_round_trip(self, client, register):
        """Ann plans a trip; Bob likes, comments on and reviews it."""
        ann, ann_headers = await register("Ann Rider", "ann", "ann@example.com")
        bob, bob_headers = await register("Bob Driver", "bob", "bob@example.com")

        created = await client.post("/api/roadtrips", json=PACIFIC_COAST, headers=ann_headers)
        assert created.status_code == 201, created.text
        trip = created.json()
        assert trip["createdBy"]["username"] == "ann"
        assert trip["coverImage"] == "/default_cover_image.jpg"
        assert [s["locationName"] for s in trip["route"]] == ["San Francisco", "Big Sur", "Los Angeles"]
        assert trip["budget"]["currency"] == "USD"
        trip_id = trip["id"]

        liked = await client.put(f"/api/roadtrips/{trip_id}/like", headers=bob_headers)
        assert liked.json() == {"likes": [bob["id"]], "liked": True, "likeCount": 1}

        comment = await client.post(
            f"/api/comments/{trip_id}", json={"text": "Stop at Nepenthe!"}, headers=bob_headers
        )
        assert comment.status_code == 201, comment.text
        assert comment.json()["user"]["username"] == "bob"

        review = await client.post(
            f"/api/reviews/{trip_id}",
            json={"rating": 5, "comment": "Best drive of my life.", "travelType": "Friends"},
            headers=bob_headers,
        )
        assert review.status_code == 201, review.text

        detail = (await client.get(f"/api/roadtrips/{trip_id}")).json()
        assert detail["likeCount"] == 1
        assert detail["commentCount"] == 1
        assert detail["reviewCount"] == 1
        assert detail["averageRating"] == 5.0
        assert detail["views"] == 1

        reviews = (await client.get(f"/api/reviews/trip/{trip_id}")).json()
        assert reviews["stats"] == {"averageRating": 5.0, "totalReviews": 1}

        feed = (await client.get("/api/roadtrips")).json()
        assert [t["id"] for t in feed["trips"]] == [trip_id]
        assert feed["pagination"]["totalItems"] == 1

        search = (await client.get("/api/roadtrips/search", params={"q": "big sur"})).json()
        assert [t["id"] for t in search["trips"]] == [trip_id]

        profile = (await client.get(f"/api/users/profile/{ann['id']}")).json()
        assert [t["id"] for t in profile["createdTrips"]] == [trip_id]

    @pytest.mark.asyncio
    async def test_duplicate_review_is_400(self, client, register):
        _, ann_headers = await register("Ann Rider", "ann", "ann@example.com")
        trip = (await client.post("/api/roadtrips", json=PACIFIC_COAST, headers=ann_headers)).json()

        body = {"rating": 4, "comment": "Lovely coastline."}
        first = await client.post(f"/api/reviews/{trip['id']}", json=body, headers=ann_headers)
        second = await client.post(f"/api/reviews/{trip['id']}", json=body, headers=ann_headers)

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json()["message"] == "You have already reviewed this trip"

    @pytest.mark.asyncio
    async def test_private_trip_is_404_for_others(self, client, register):
        _, ann_headers = await register("Ann Rider", "ann", "ann@example.com")
        _, bob_headers = await register("Bob Driver", "bob", "bob@example.com")
        trip = (
            await client.post(
                "/api/roadtrips", json={**PACIFIC_COAST, "isPublic": False}, headers=ann_headers
            )
        ).json()

        assert (await client.get(f"/api/roadtrips/{trip['id']}", headers=bob_headers)).status_code == 404
        assert (await client.get(f"/api/roadtrips/{trip['id']}", headers=ann_headers)).status_code == 200

        mine = (await client.get("/api/roadtrips/user/mytrips", headers=ann_headers)).json()
        assert [t["id"] for t in mine["trips"]] == [trip["id"]]

    @pytest.mark.asyncio
    async def test_update_and_delete_ownership(self, client, register):
        _, ann_headers = await register("Ann Rider", "ann", "ann@example.com")
        _, bob_headers = await register("Bob Driver", "bob", "bob@example.com")
        trip = (await client.post("/api/roadtrips", json=PACIFIC_COAST, headers=ann_headers)).json()
        url = f"/api/roadtrips/{trip['id']}"

        forbidden = await client.put(url, json={"title": "Hijacked"}, headers=bob_headers)
        assert forbidden.status_code == 403
        assert forbidden.json()["error"] == "forbidden"

        updated = await client.put(url, json={"title": "PCH in Autumn"}, headers=ann_headers)
        assert updated.status_code == 200
        assert updated.json()["title"] == "PCH in Autumn"

        assert (await client.delete(url, headers=bob_headers)).status_code == 403
        deleted = await client.delete(url, headers=ann_headers)
        assert deleted.status_code == 204
        assert deleted.content == b""
        assert (await client.get(url)).status_code == 404

    @pytest.mark.asyncio
    async def test_multipart_create_with_image(self, client, register, jpeg_bytes):
        """Form fields carry JSON strings; the stored image is served back."""
        _, ann_headers = await register("Ann Rider", "ann", "ann@example.com")

        response = await client.post(
            "/api/roadtrips",
            data={
                "title": "Desert Loop",
                "description": "Joshua Tree, Palm Springs and the Salton Sea.",
                "route": '[{"locationName": "Joshua Tree"}, {"locationName": "Palm Springs"}]',
                "tags": "desert, stars",
                "season": "Spring",
                "isPublic": "true",
            },
            files=[("images", ("joshua.jpg", jpeg_bytes, "image/jpeg"))],
            headers=ann_headers,
        )

        assert response.status_code == 201, response.text
        trip = response.json()
        assert trip["tags"] == ["desert", "stars"]
        assert trip["season"] == ["Spring"]
        assert trip["coverImage"] == trip["images"][0]
        assert trip["coverImage"].startswith("/api/files/")

        image = await client.get(trip["coverImage"])
        assert image.status_code == 200
        assert image.content == jpeg_bytes
        assert image.headers["content-type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_multipart_bad_route_json(self, client, register):
        _, ann_headers = await register("Ann Rider", "ann", "ann@example.com")

        response = await client.post(
            "/api/roadtrips",
            data={"title": "Broken", "description": "Route field is not JSON.", "route": "[{oops"},
            headers=ann_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid route data format."

    @pytest.mark.asyncio
    async def test_multipart_too_many_files(self, client, register, jpeg_bytes):
        """Six images are refused before anything is stored or persisted."""
        _, ann_headers = await register("Ann Rider", "ann", "ann@example.com")

        response = await client.post(
            "/api/roadtrips",
            data={"title": "Six Photos", "description": "One photo more than allowed."},
            files=[("images", (f"{i}.jpg", jpeg_bytes, "image/jpeg")) for i in range(6)],
            headers=ann_headers,
        )

        assert response.status_code == 400
        assert "Too many files" in response.json()["message"]
        mine = (await client.get("/api/roadtrips/user/mytrips", headers=ann_headers)).json()
        assert mine["trips"] == []

    @pytest.mark.asyncio
    async def test_multipart_oversized_file(self, client, register, monkeypatch):
        from roadtrip_api.config import settings

        monkeypatch.setattr(settings, "max_file_size", 1024)
        _, ann_headers = await register("Ann Rider", "ann", "ann@example.com")

        response = await client.post(
            "/api/roadtrips",
            data={"title": "Big Photo", "description": "A single photo that is too large."},
            files=[("images", ("big.jpg", b"\xff\xd8" + b"0" * 4096, "image/jpeg"))],
            headers=ann_headers,
        )

        assert response.status_code == 400
        assert "exceeds maximum size" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_page_far_past_the_end(self, client):
        """An enormous page number is an empty page, not a server error."""
        response = await client.get("/api/roadtrips", params={"page": 10**19})

        assert response.status_code == 200
        body = response.json()
        assert body["trips"] == []
        assert body["pagination"]["currentPage"] == 10**19
        assert body["pagination"]["hasNext"] is False

        users = await client.get("/api/users", params={"page": 10**18, "limit": 100})
        assert users.status_code == 200
        assert users.json()["users"] == []

    @pytest.mark.asyncio
    async def test_missing_file_is_404(self, client):
        response = await client.get("/api/files/2025/01/01/missing.jpg")
        assert response.status_code == 404
        assert response.json()["message"] == "File not found"


class TestAuthEndpoints:
    @pytest.mark.asyncio
    async def test_register_then_login(self, client, register, password):
        user, _ = await register("Ann Rider", "ann", "ann@example.com")

        response = await client.post(
            "/api/auth/login", json={"email": "ANN@example.com", "password": password}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == user["id"]
        assert "passwordHash" not in body["user"]

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, client, register):
        await register("Ann Rider", "ann", "ann@example.com")
        response = await client.post(
            "/api/auth/register",
            json={"name": "Ann Two", "username": "ann2", "email": "ann@example.com", "password": "secret123"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Email already exists"

    @pytest.mark.asyncio
    async def test_register_validation_message(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"name": "Ann", "username": "ann", "email": "not-an-email", "password": "secret123"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "email: Please enter a valid email address"

    @pytest.mark.asyncio
    async def test_bad_login(self, client, register):
        await register("Ann Rider", "ann", "ann@example.com")
        response = await client.post(
            "/api/auth/login", json={"email": "ann@example.com", "password": "wrong-one"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_profile_requires_token(self, client):
        response = await client.get("/api/auth/profile")
        assert response.status_code == 401
        assert response.json()["message"] == "No token provided, authorization denied"

    @pytest.mark.asyncio
    async def test_bearer_header_accepted(self, client, register):
        user, headers = await register("Ann Rider", "ann", "ann@example.com")
        token = headers["x-auth-token"]

        response = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["email"] == "ann@example.com"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get("/api/auth/profile", headers={"x-auth-token": "garbage"})
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_create_trip_requires_auth(self, client):
        response = await client.post("/api/roadtrips", json=PACIFIC_COAST)
        assert response.status_code == 401


class TestUserEndpoints:
    @pytest.mark.asyncio
    async def test_follow_and_delete_account(self, client, register):
        ann, ann_headers = await register("Ann Rider", "ann", "ann@example.com")
        bob, bob_headers = await register("Bob Driver", "bob", "bob@example.com")

        followed = await client.put(f"/api/users/{ann['id']}/follow", headers=bob_headers)
        assert followed.json() == {"following": True, "followerCount": 1}

        deleted = await client.delete(f"/api/users/{bob['id']}", headers=bob_headers)
        assert deleted.status_code == 204

        profile = (await client.get(f"/api/users/profile/{ann['id']}")).json()
        assert profile["followerCount"] == 0

        # Bob's token no longer resolves to a user
        assert (await client.get("/api/auth/profile", headers=bob_headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_delete_account_discards_trip_images(self, client, register, storage, jpeg_bytes):
        ann, ann_headers = await register("Ann Rider", "ann", "ann@example.com")
        created = await client.post(
            "/api/roadtrips",
            data={"title": "Desert Loop", "description": "Joshua Tree and the Salton Sea."},
            files=[("images", ("joshua.jpg", jpeg_bytes, "image/jpeg"))],
            headers=ann_headers,
        )
        assert created.status_code == 201, created.text
        relative = created.json()["images"][0][len("/api/files/"):]
        assert storage.resolve(relative) is not None

        deleted = await client.delete(f"/api/users/{ann['id']}", headers=ann_headers)

        assert deleted.status_code == 204
        assert storage.resolve(relative) is None


class TestErrorEnvelope:
    @pytest.mark.asyncio
    async def test_not_found_shape(self, client):
        response = await client.get(
            f"/api/roadtrips/{uuid.uuid4()}", headers={"X-Request-ID": "trace123"}
        )
        assert response.status_code == 404
        assert response.json() == {
            "message": "Trip not found",
            "error": "not_found",
            "requestId": "trace123",
        }
        assert response.headers["X-Request-ID"] == "trace123"

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, client):
        response = await client.get("/api/roadtrips/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_generated_request_id(self, client):
        response = await client.get("/api/roadtrips")
        assert len(response.headers["X-Request-ID"]) == 8


class TestExternalEndpoints:
    @pytest.mark.asyncio
    async def test_weather(self, app, client):
        def provider(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "location": {"name": "Monterey", "region": "California", "country": "USA"},
                    "current": {"temp_c": 17.0, "condition": {"text": "Fog", "icon": ""}},
                },
            )

        app.dependency_overrides[get_weather_service] = lambda: WeatherService(
            api_key="k", transport=httpx.MockTransport(provider)
        )

        response = await client.get("/api/weather", params={"location": "Monterey"})
        assert response.status_code == 200
        assert response.json()["temp_c"] == 17.0
        assert response.json()["condition"] == "Fog"

    @pytest.mark.asyncio
    async def test_weather_requires_location(self, client):
        response = await client.get("/api/weather")
        assert response.status_code == 400
        assert response.json()["message"] == "Location query parameter is required"

    @pytest.mark.asyncio
    async def test_route_requires_auth(self, client):
        response = await client.post(
            "/api/route", json={"startLocationName": "A", "endLocationName": "B"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_route_timeout_is_408(self, app, client, register):
        _, headers = await register("Ann Rider", "ann", "ann@example.com")

        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        app.dependency_overrides[get_directions_service] = lambda: DirectionsService(
            api_key="k", transport=httpx.MockTransport(slow)
        )

        response = await client.post(
            "/api/route",
            json={"startLocationName": "San Francisco", "endLocationName": "Los Angeles"},
            headers=headers,
        )
        assert response.status_code == 408
        assert response.json()["message"] == "Route service timeout"


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["message"] == "Road Trip Planner API is running"
