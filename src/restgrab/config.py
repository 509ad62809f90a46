from __future__ import annotations

from dataclasses import dataclass

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_MULTIPART_BYTES = 20 << 20


@dataclass(frozen=True)
class BindConfig:
    """Per-call binding options. Build once at startup and pass it around."""

    required_by_default: bool = True


class Settings(BaseSettings):
    """
    Process settings, read from the environment (or a .env file).

    Treat these as setup-time values: build the settings once at startup
    and do not change them while requests are being bound.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    required_by_default: bool = Field(default=True, alias="RESTGRAB_REQUIRED_BY_DEFAULT")
    max_multipart_bytes: int = Field(
        default=DEFAULT_MAX_MULTIPART_BYTES, alias="RESTGRAB_MAX_MULTIPART_BYTES", gt=0
    )

    def bind_config(self) -> BindConfig:
        return BindConfig(required_by_default=self.required_by_default)
