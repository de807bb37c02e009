"""
Unit Tests for Schemas
======================

Query re-encoding, timestamp formatting and telemetry payloads.
"""

from urllib.parse import parse_qsl

import pytest
from pydantic import ValidationError

from naotimes_og.models.schemas import (
    OGImageRequest,
    RenderOutcome,
    RenderStage,
    TelemetryEvent,
    UserCardRequest,
    MAX_WIB_TIMESTAMP,
    format_wib,
)


class TestQueryEncoding:
    def test_declaration_order_and_unset_fields_omitted(self):
        request = UserCardRequest(
            username="noaione",
            created_at=1600000000,
            joined_at=1600000100,
            status="online",
            flags="HYPESQUAD,EARLY_SUPPORTER",
        )

        assert request.to_query_string() == (
            "username=noaione&created_at=1600000000&joined_at=1600000100"
            "&flags=HYPESQUAD%2CEARLY_SUPPORTER&status=online"
        )

    def test_decoding_the_encoded_query_reproduces_it(self):
        request = UserCardRequest(
            username="N4O #1 ✓",
            tag="0001",
            role_color="#ff00aa",
            created_at=1,
            joined_at=2,
            img_url="https://cdn.discordapp.com/avatars/1/a.png?size=256&x=1",
        )
        encoded = request.to_query_string()

        decoded = UserCardRequest(**dict(parse_qsl(encoded)))

        assert decoded == request
        assert decoded.to_query_string() == encoded

    def test_og_request_counts(self):
        request = OGImageRequest(name="Kresbayyy Fansub", count=3)
        assert request.to_query_string() == "name=Kresbayyy%20Fansub&count=3"

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            OGImageRequest(name="x", colour="red")

    def test_negative_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            UserCardRequest(username="x", created_at=-1, joined_at=0)

    def test_non_numeric_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            UserCardRequest(username="x", created_at="yesterday", joined_at=0)

    @pytest.mark.parametrize("field", ["created_at", "joined_at"])
    def test_timestamp_past_year_9999_rejected(self, field):
        values = {"created_at": 0, "joined_at": 0, field: MAX_WIB_TIMESTAMP + 1}
        with pytest.raises(ValidationError):
            UserCardRequest(username="x", **values)

    def test_flag_list(self):
        assert UserCardRequest(username="x", created_at=0, joined_at=0).flag_list == []
        request = UserCardRequest(username="x", created_at=0, joined_at=0, flags="A,B")
        assert request.flag_list == ["A", "B"]


def test_format_wib():
    assert format_wib(0) == "1970-01-01 07:00:00 WIB"
    assert format_wib(1600000000) == "2020-09-13 19:26:40 WIB"
    assert format_wib(MAX_WIB_TIMESTAMP) == "9999-12-31 23:59:59 WIB"


def test_telemetry_payload():
    event = TelemetryEvent(url="/large?name=x", domain="naoti.me")
    assert event.to_payload() == {"name": "pageview", "url": "/large?name=x", "domain": "naoti.me"}


def test_render_outcome_ok():
    assert RenderOutcome(stage=RenderStage.DONE, image=b"png").ok
    assert not RenderOutcome(stage=RenderStage.DONE, image=b"").ok
    assert not RenderOutcome(stage=RenderStage.FAILED, failed_at=RenderStage.LAUNCHING).ok
