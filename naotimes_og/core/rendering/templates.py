"""
User Card Templates
===================

Render the user card HTML that the screenshot pipeline captures.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import unquote

import jinja2

from naotimes_og.config.logging import get_logger
from naotimes_og.core.rendering.status_text import (
    STATUS_CLASSES,
    UNKNOWN_STATUS_TEXT,
    select_random_status,
)
from naotimes_og.models.schemas import UserCardRequest, format_wib

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "html"
USER_CARD_TEMPLATE = "user_card_template.html"


class TemplateRenderError(Exception):
    """Exception raised when a template fails to render."""

    pass


def build_user_card_context(request: UserCardRequest) -> Dict[str, Any]:
    """Template variables for the user card."""
    extra: Dict[str, Any] = {
        "flags": request.flag_list,
        "role_color": request.role_color,
        "status": None,
        "status_text": None,
        "img_url": unquote(request.img_url) if request.img_url else None,
    }

    if request.status is not None:
        extra["status"] = STATUS_CLASSES.get(request.status.lower())
        extra["status_text"] = select_random_status(request.status) or UNKNOWN_STATUS_TEXT

    return {
        "username": request.username,
        "tag": request.tag,
        "nickname": request.nickname,
        "role_name": request.role_name,
        "created_at": format_wib(request.created_at),
        "joined_at": format_wib(request.joined_at),
        "json_extra": json.dumps(extra),
    }


class UserCardTemplates:
    """Jinja2 environment for the user card."""

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        self.logger: Any = logger.bind(component="templates")
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
        )

    def render_user_card(self, request: UserCardRequest) -> str:
        try:
            template = self.env.get_template(USER_CARD_TEMPLATE)
            return template.render(**build_user_card_context(request))
        except jinja2.TemplateError as e:
            self.logger.error("Error rendering template", error=repr(e))
            raise TemplateRenderError(f"Error rendering template: {e}") from e
