"""
Natours Backend — View Route Tests
====================================

What we test:
    ✅ Overview lists tours
    ✅ Tour page by slug; unknown slug renders the error page
    ✅ Signup page loads the client scripts
"""

import pytest

HTML = {"Accept": "text/html"}


class TestViews:

    @pytest.mark.asyncio
    async def test_overview_lists_tours(self, test_client, tour_payload):
        await test_client.post("/api/v1/tours", json=tour_payload)
        response = await test_client.get("/", headers=HTML)
        assert response.status_code == 200
        assert "Natours | All Tours" in response.text
        assert "The Forest Hiker" in response.text
        assert 'href="/tour/the-forest-hiker"' in response.text

    @pytest.mark.asyncio
    async def test_tour_page(self, test_client, tour_payload):
        await test_client.post("/api/v1/tours", json=tour_payload)
        response = await test_client.get("/tour/the-forest-hiker", headers=HTML)
        assert response.status_code == 200
        assert "The Forest Hiker Tour" in response.text

    @pytest.mark.asyncio
    async def test_unknown_tour_renders_error_page(self, test_client):
        response = await test_client.get("/tour/atlantis", headers=HTML)
        assert response.status_code == 404
        assert "Something went wrong!" in response.text
        assert "There is no tour with that name." in response.text

    @pytest.mark.asyncio
    async def test_signup_page(self, test_client):
        response = await test_client.get("/signup", headers=HTML)
        assert response.status_code == 200
        assert 'class="form form--signup"' in response.text
        assert '<script src="/js/signup.js"></script>' in response.text
