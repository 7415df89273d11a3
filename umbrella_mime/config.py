"""Parser and logging configuration loaded from environment variables.

Uses pydantic-settings so every field can be overridden via env vars
(``MIME_MAX_DEPTH=5``, ``LOG_LEVEL=DEBUG``).
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class ParserConfig(BaseSettings):
    """Tuning knobs for :class:`~umbrella_mime.parser.MimeParser`."""

    model_config = {"env_prefix": "MIME_"}

    max_depth: int = Field(
        default=10,
        ge=1,
        description="Maximum multipart nesting depth before a subtree is kept opaque",
    )
    auto_base64_min_length: int = Field(
        default=100,
        ge=0,
        description="Undeclared base64 is only considered above this many characters",
    )
    clean_html: bool = Field(
        default=True,
        description="Strip leaked boundary lines and preamble from the HTML body",
    )
    detect_pec: bool = Field(
        default=True,
        description="Detect Italian certified mail (PEC) envelopes",
    )


class LoggingConfig(BaseSettings):
    """structlog output settings."""

    model_config = {"env_prefix": "LOG_"}

    json_output: bool = Field(
        default=True,
        description="Render JSON lines; console renderer when false",
    )
    level: str = Field(default="INFO", description="Root log level name")
