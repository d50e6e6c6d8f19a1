"""
Runtime Configuration.

Process-wide controls shared by the registry, its transports and formatters.
Values are read from ``LOGURI_*`` environment variables (or ``.env``) and may be
changed at runtime; assignments are validated.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .levels import parse_level

BINARY_BASES = (2, 8, 10, 16)
MAX_CHUNKS = 0xFF


class LoguriSettings(BaseSettings):
    """Logging controls.

    Prefix: LOGURI_
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGURI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    level: Optional[int] = Field(default=None, description="Process-wide severity mask, None disables filtering")
    verbose: bool = Field(default=False, description="Render error values with their traceback")
    chunked: int = Field(default=1, description="Maximum number of fragments per datagram message")
    binary: int = Field(default=16, description="Numeric base of buffer dumps (2, 8, 10 or 16)")
    reopen_interval: float = Field(default=60.0, gt=0, description="Seconds between file handle reopen passes")
    packet_size: int = Field(default=0x2000, ge=13, le=65507, description="Largest datagram sent unfragmented")
    signal_rotation: bool = Field(default=True, description="Force-reopen files on SIGUSR2")

    @field_validator("level", mode="before")
    @classmethod
    def _compile_level(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        return parse_level(value)

    @field_validator("chunked", mode="before")
    @classmethod
    def _clamp_chunked(cls, value: Any) -> int:
        count = math.ceil(float(value))
        return min(max(count, 1), MAX_CHUNKS)

    @field_validator("binary")
    @classmethod
    def _check_binary(cls, value: int) -> int:
        if value not in BINARY_BASES:
            raise ValueError(f"binary base must be one of {BINARY_BASES}")
        return value
