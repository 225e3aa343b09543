"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_ROSTER: tuple[str, ...] = (
    "AdamRoguezy",
    "ADarkLegacy",
    "aksually",
    "ARCHIT3CT",
    "ashleyroboto",
    "banthony",
    "blizz",
    "BobbyBurm",
    "butteryflaky",
    "bwick",
    "Carla",
    "cheebs",
    "chiblee",
    "chrismelberger",
    "ChrispyGameplay",
    "Crub",
    "detune",
    "dudlik",
    "EthanNestor",
    "hankstergirl",
    "hanner",
    "JessCapricorn",
    "johnchoi",
    "LeoSypniewski",
    "Loganolio",
    "Michael_Lopriore",
    "nandre",
    "PapaHogsPalaceOfPleasure",
    "PointCrow",
    "prezoh",
    "sandy",
    "Shaggedy",
    "Skootish",
    "vaqrgaming",
    "vixella",
    "whisqey",
)

MIN_INTERVAL_SECONDS = 5
MAX_INTERVAL_SECONDS = 600


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="ChannelCycle", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    twitch_client_id: str | None = Field(default=None, alias="TWITCH_CLIENT_ID")
    twitch_client_secret: str | None = Field(
        default=None, alias="TWITCH_CLIENT_SECRET"
    )
    twitch_api_url: HttpUrl = Field(
        default="https://api.twitch.tv/helix", alias="TWITCH_API_URL"
    )
    twitch_auth_url: HttpUrl = Field(
        default="https://id.twitch.tv", alias="TWITCH_AUTH_URL"
    )

    # App tokens live for roughly 60 days; refresh five days early.
    token_cache_seconds: int = Field(
        default=55 * 24 * 60 * 60, alias="TOKEN_CACHE_SECONDS", ge=60
    )
    token_refresh_margin_seconds: int = Field(
        default=60, alias="TOKEN_REFRESH_MARGIN_SECONDS", ge=0
    )
    request_timeout_seconds: float = Field(
        default=10.0, alias="REQUEST_TIMEOUT", gt=0, le=120
    )

    status_proxy_url: HttpUrl = Field(
        default="http://localhost:3000", alias="STATUS_PROXY_URL"
    )
    parent_host: str = Field(default="localhost", alias="PARENT_HOST")
    default_roster: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_ROSTER, alias="DEFAULT_ROSTER"
    )
    default_category: str = Field(default="Minecraft", alias="DEFAULT_CATEGORY")
    rotation_interval_seconds: int = Field(
        default=30,
        alias="ROTATION_INTERVAL",
        ge=MIN_INTERVAL_SECONDS,
        le=MAX_INTERVAL_SECONDS,
    )
    poll_interval_seconds: int = Field(default=60, alias="POLL_INTERVAL", ge=10)
    live_only: bool = Field(default=True, alias="LIVE_ONLY")
    muted: bool = Field(default=False, alias="MUTED")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./channelcycle.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("default_roster", mode="before")
    @classmethod
    def _parse_default_roster(cls, value: object) -> tuple[str, ...]:
        """Normalise roster entries supplied as a comma separated string."""

        if value is None:
            return DEFAULT_ROSTER
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("DEFAULT_ROSTER must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            if entry and entry not in cleaned:
                cleaned.append(entry)
        if not cleaned:
            return DEFAULT_ROSTER
        return tuple(cleaned)

    @property
    def has_twitch_credentials(self) -> bool:
        return bool(self.twitch_client_id and self.twitch_client_secret)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
