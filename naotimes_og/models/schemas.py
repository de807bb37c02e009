"""
Pydantic Models and Schemas
===========================

Request parameters, client metadata, telemetry events and rendering outcomes.
"""

from typing import Optional, List, Dict, Any, Tuple, Union
from datetime import datetime, timedelta, timezone
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from urllib.parse import urlencode, quote

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


IPAddress = Union[IPv4Address, IPv6Address]

# Timestamps on user cards are displayed in Western Indonesia Time.
WIB = timezone(timedelta(hours=7))

# 9999-12-31 23:59:59 WIB, the last instant datetime can represent there.
MAX_WIB_TIMESTAMP = 253402275599


# Enums
class ArtifactKind(str, Enum):
    """Artifact families, used in the Content-Disposition filename."""

    OG_IMAGE = "OGImage"
    USER_CARD = "UserCard"


class TelemetryPolicy(str, Enum):
    """When a render handler reports its telemetry event."""

    ON_SUCCESS = "on_success"
    ALWAYS = "always"


class RenderStage(str, Enum):
    """States of the screenshot pipeline."""

    LAUNCHING = "launching"
    NAVIGATING_TO_SOURCE = "navigating_to_source"
    WAITING_FOR_READY_SIGNAL = "waiting_for_ready_signal"
    MEASURING_CONTENT = "measuring_content"
    RECAPTURING_VIEWPORT = "recapturing_viewport"
    CAPTURING_IMAGE = "capturing_image"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RenderStage.DONE, RenderStage.FAILED)


# Query models
class QueryModel(BaseModel):
    """Base for query-string decoded request parameters.

    Unknown parameters are rejected. ``to_query_string`` re-encodes the set
    fields in declaration order, so decoding its output with the same model
    and encoding again yields the identical string.
    """

    model_config = ConfigDict(extra="forbid")

    def to_query_pairs(self) -> List[Tuple[str, str]]:
        pairs = []
        for name, value in self.model_dump(exclude_none=True).items():
            pairs.append((name, str(value)))
        return pairs

    def to_query_string(self) -> str:
        return urlencode(self.to_query_pairs(), quote_via=quote, safe="")


class OGImageRequest(QueryModel):
    """Parameters for the Open Graph preview card."""

    name: str
    count: Optional[NonNegativeInt] = None
    total: Optional[NonNegativeInt] = None


class UserCardRequest(QueryModel):
    """Parameters for the user status card."""

    username: str
    tag: Optional[str] = None
    nickname: Optional[str] = None
    role_name: Optional[str] = None
    role_color: Optional[str] = None
    created_at: int = Field(
        ..., ge=0, le=MAX_WIB_TIMESTAMP, description="Unix timestamp in seconds"
    )
    joined_at: int = Field(
        ..., ge=0, le=MAX_WIB_TIMESTAMP, description="Unix timestamp in seconds"
    )
    flags: Optional[str] = Field(None, description="Comma separated Discord flags")
    status: Optional[str] = None
    img_url: Optional[str] = None

    @property
    def flag_list(self) -> List[str]:
        if self.flags is None:
            return []
        return self.flags.split(",")


def format_wib(timestamp: int) -> str:
    """Format a unix timestamp as ``YYYY-MM-DD HH:MM:SS WIB``."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc).astimezone(WIB)
    return moment.strftime("%Y-%m-%d %H:%M:%S WIB")


# Telemetry models
class ClientMetadata(BaseModel):
    """Client identity extracted from the inbound request headers."""

    model_config = ConfigDict(frozen=True)

    user_agent: str = ""
    candidate_ips: Tuple[IPAddress, ...] = ()


class TelemetryEvent(BaseModel):
    """Plausible event body. ``domain`` is set by the dispatcher."""

    name: str = "pageview"
    url: str
    props: Optional[Dict[str, Any]] = None
    domain: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name, "url": self.url, "domain": self.domain}
        if self.props is not None:
            payload["props"] = self.props
        return payload


# Rendering models
class Viewport(BaseModel):
    """Capture region of the rendered page."""

    x: float = 0.0
    y: float = 0.0
    width: float = 510.0
    height: float = 360.0
    scale: float = 1.0

    def to_clip(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class RenderOutcome(BaseModel):
    """Result of one pass through the screenshot pipeline."""

    stage: RenderStage
    image: bytes = b""
    viewport: Optional[Viewport] = None
    failed_at: Optional[RenderStage] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.stage is RenderStage.DONE and len(self.image) > 0
