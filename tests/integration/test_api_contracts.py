"""
Integration Tests for API Contracts
===================================

End-to-end requests against the FastAPI application with a fake browser
engine and recording HTTP sessions.
"""

import asyncio
import io
import time
from urllib.parse import parse_qsl, urlsplit

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from naotimes_og.api.dependencies import build_app_state
from naotimes_og.api.main import create_app
from naotimes_og.models.schemas import UserCardRequest

from tests.utils.mocks import (
    PNG_BYTES,
    FakeEngineFactory,
    FakeResponse,
    RecordingSessionFactory,
    unreachable_error,
)

USER_CARD = "/_/generator/user_card"
MINIMAL_PARAMS = {"username": "noaione", "created_at": "1600000000", "joined_at": "1600000000"}
CLIENT_HEADERS = {
    "User-Agent": "Discordbot/2.0",
    "CF-Connecting-IP": "1.1.1.1",
    "X-Forwarded-For": "10.0.0.3, 8.8.8.8",
}


def wait_for_requests(sessions: RecordingSessionFactory, count: int = 1, timeout: float = 5.0):
    deadline = time.monotonic() + timeout
    while len(sessions.requests) < count and time.monotonic() < deadline:
        time.sleep(0.01)
    return sessions.requests


def make_client(settings, engine_factory, session_factory) -> TestClient:
    state = build_app_state(settings, engine_factory=engine_factory, session_factory=session_factory)
    return TestClient(create_app(state))


class TestBasicEndpoints:
    def test_index(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "</> Made for naoTimes by @noaione</>"
        assert "x-request-id" in response.headers

    def test_unknown_route(self, client):
        response = client.get("/does-not-exist")
        assert response.status_code == 404
        assert response.text == "<h2>404 Not Found</h2>"
        assert response.headers["content-type"].startswith("text/html")


class TestUserCardGenerator:
    def test_successful_render(self, client, engine_factory, session_factory):
        """Minimal parameters render a cacheable PNG."""
        response = client.get(USER_CARD, params=MINIMAL_PARAMS, headers=CLIENT_HEADERS)

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == "public, max-age=600"
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('inline; filename="')
        assert disposition.endswith('.UserCard.png"')
        assert response.content == PNG_BYTES

        engine = engine_factory.engines[0]
        assert engine.call_names[-1] == "capture_screenshot"
        assert engine.closed

    def test_renderer_receives_reencoded_query(self, client, engine_factory):
        params = {**MINIMAL_PARAMS, "flags": "A,B", "img_url": "https://cdn.example/a.png?x=1"}
        client.get(USER_CARD, params=params)

        url = engine_factory.engines[0].calls[1][1]
        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == (
            "http://render.test/_/template/user_card"
        )
        assert parts.query == UserCardRequest(**params).to_query_string()
        assert dict(parse_qsl(parts.query)) == params

    def test_telemetry_after_success(self, client, session_factory):
        response = client.get(USER_CARD, params=MINIMAL_PARAMS, headers=CLIENT_HEADERS)
        assert response.status_code == 200

        requests = wait_for_requests(session_factory)

        assert len(requests) == 1
        body = requests[0]["json"]
        assert body["name"] == "pageview"
        assert body["domain"] == "naoti.me"
        assert body["url"] == f"{USER_CARD}?{UserCardRequest(**MINIMAL_PARAMS).to_query_string()}"
        uuid = response.headers["content-disposition"].split('"')[1].split(".")[0]
        assert body["props"] == {"uuid": uuid}
        assert requests[0]["headers"]["User-Agent"] == "Discordbot/2.0"
        assert requests[0]["headers"]["X-Forwarded-For"] == "1.1.1.1,8.8.8.8"

    def test_ready_signal_never_appears(self, test_settings, session_factory):
        """A missing readiness marker is a 500 with no telemetry."""
        engines = FakeEngineFactory(fail_on="wait_for_element")

        with make_client(test_settings, engines, session_factory) as client:
            response = client.get(USER_CARD, params=MINIMAL_PARAMS, headers=CLIENT_HEADERS)
            time.sleep(0.1)

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Error generating user card"
        assert engines.engines[0].call_names[-1] == "wait_for_element"
        assert "evaluate" not in engines.engines[0].call_names
        assert session_factory.requests == []

    def test_unreachable_telemetry_does_not_affect_response(self, test_settings, engine_factory):
        sessions = RecordingSessionFactory(error=unreachable_error())

        with make_client(test_settings, engine_factory, sessions) as client:
            response = client.get(USER_CARD, params=MINIMAL_PARAMS, headers=CLIENT_HEADERS)
            requests = wait_for_requests(sessions)

        assert response.status_code == 200
        assert response.content == PNG_BYTES
        assert len(requests) == 1
        assert requests[0]["method"] == "POST"
        assert requests[0]["url"] == "https://plausible.test/api/event"
        assert requests[0]["json"]["url"].startswith(f"{USER_CARD}?username=noaione")
        assert requests[0]["headers"] == {
            "User-Agent": "Discordbot/2.0",
            "X-Forwarded-For": "1.1.1.1,8.8.8.8",
            "Content-Type": "application/json",
        }

    def test_telemetry_disabled(self, disabled_settings, engine_factory, session_factory):
        with make_client(disabled_settings, engine_factory, session_factory) as client:
            response = client.get(USER_CARD, params=MINIMAL_PARAMS)
            time.sleep(0.1)

        assert response.status_code == 200
        assert session_factory.sessions == []

    @pytest.mark.parametrize(
        "params",
        [
            {**MINIMAL_PARAMS, "unexpected": "1"},
            {**MINIMAL_PARAMS, "created_at": "yesterday"},
            {"username": "noaione", "created_at": "1"},
            {**MINIMAL_PARAMS, "created_at": str(10**15)},
        ],
    )
    def test_bad_query_rejected_before_rendering(self, client, engine_factory, params):
        response = client.get(USER_CARD, params=params)

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert engine_factory.engines == []


class TestTemplate:
    def test_user_card_html(self, client):
        response = client.get("/_/template/user_card", params={**MINIMAL_PARAMS, "tag": "0001"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "noaione" in response.text
        assert "2020-09-13 19:26:40 WIB" in response.text
        assert "ready-notifier" in response.text

    def test_unknown_parameter(self, client):
        response = client.get("/_/template/user_card", params={**MINIMAL_PARAMS, "x": "1"})
        assert response.status_code == 400

    def test_out_of_range_timestamp(self, client, engine_factory):
        response = client.get(
            "/_/template/user_card", params={**MINIMAL_PARAMS, "joined_at": str(10**15)}
        )

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert engine_factory.engines == []


class TestOGImage:
    def test_og_image(self, client, session_factory):
        response = client.get("/large", params={"name": "Kresbayyy", "count": 3, "total": 10})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == "public, max-age=600"
        assert response.headers["content-disposition"].endswith('.OGImage.png"')
        with Image.open(io.BytesIO(response.content)) as image:
            assert image.size == (1280, 720)

        requests = wait_for_requests(session_factory)
        assert requests[0]["json"]["url"] == "/large?name=Kresbayyy&count=3&total=10"

    def test_failed_og_image_still_reports(self, test_settings, engine_factory, session_factory, tmp_path):
        settings = test_settings.model_copy(update={"og_base_image": tmp_path / "missing.png"})

        with make_client(settings, engine_factory, session_factory) as client:
            response = client.get("/large", params={"name": "Kresbayyy"})
            requests = wait_for_requests(session_factory)

        assert response.status_code == 500
        assert response.text == "Error creating OG Image"
        assert len(requests) == 1
        assert requests[0]["json"]["url"] == "/large?name=Kresbayyy"

    def test_missing_name(self, client):
        assert client.get("/large").status_code == 400


class TestMusicThumbnails:
    def test_bandcamp_redirect(self, test_settings, engine_factory):
        html = '<link rel="image_src" href="https://f4.bcbits.com/img/a10.jpg">'
        sessions = RecordingSessionFactory(response=FakeResponse(200, html))

        with make_client(test_settings, engine_factory, sessions) as client:
            response = client.get(
                "/_/thumbs/bandcamp",
                params={"url": "https://artist.bandcamp.com/track/x"},
                follow_redirects=False,
            )

        assert response.status_code == 303
        assert response.headers["location"] == "https://f4.bcbits.com/img/a10.jpg"
        assert sessions.requests[0]["url"] == "https://artist.bandcamp.com/track/x"

    def test_soundcloud_not_found(self, test_settings, engine_factory):
        sessions = RecordingSessionFactory(response=FakeResponse(404, "missing"))

        with make_client(test_settings, engine_factory, sessions) as client:
            response = client.get("/_/thumbs/soundcloud/artist/title")

        assert response.status_code == 404
        assert response.text == "Soundcloud track not found: `/artist/title`"

    def test_soundcloud_without_image(self, test_settings, engine_factory):
        sessions = RecordingSessionFactory(response=FakeResponse(200, "<html></html>"))

        with make_client(test_settings, engine_factory, sessions) as client:
            response = client.get("/_/thumbs/soundcloud/artist/title")

        assert response.status_code == 404
        assert response.text == "Failed to find image"

    def test_ytm_upstream_error(self, test_settings, engine_factory):
        sessions = RecordingSessionFactory(response=FakeResponse(503, "down"))

        with make_client(test_settings, engine_factory, sessions) as client:
            response = client.get("/_/thumbs/ytm/abc123")

        assert response.status_code == 500
        assert response.text == "Failed to fetch URL"
        assert sessions.requests[0]["url"] == "https://i.ytimg.com/vi/abc123/maxresdefault.jpg"

    def test_ytm_upstream_timeout(self, test_settings, engine_factory):
        sessions = RecordingSessionFactory(error=asyncio.TimeoutError())

        with make_client(test_settings, engine_factory, sessions) as client:
            response = client.get("/_/thumbs/ytm/abc123")

        assert response.status_code == 500
        assert response.text == "Failed to fetch URL"
