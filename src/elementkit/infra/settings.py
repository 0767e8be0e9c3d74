"""
elementkit settings.

Values come from the environment or a ``.env`` file. ``SITE_LOCALES`` lists every
locale the site is published in; the primary locale is always treated as the first
one, whether or not it is listed.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE_VARIABLE = "ELEMENTKIT_ENV_FILE"


class Settings(BaseSettings):
    # Database
    database_url: str = Field(default="sqlite:///elementkit.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    echo_sql: bool = Field(default=False, alias="ECHO_SQL")
    pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT")
    connect_timeout: int = Field(default=30, alias="DB_CONNECT_TIMEOUT")

    # Site
    primary_locale: str = Field(default="en", alias="PRIMARY_LOCALE")
    site_locales: str = Field(default="en", alias="SITE_LOCALES")
    # Locale of the current request; queries without a locale use it
    app_locale: str | None = Field(default=None, alias="APP_LOCALE")
    site_url: str = Field(default="http://localhost/", alias="SITE_URL")

    # Querying
    default_query_limit: int | None = Field(default=100, alias="DEFAULT_QUERY_LIMIT")
    ref_tag_max_depth: int = Field(default=10, alias="REF_TAG_MAX_DEPTH")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: str = Field(default="dev", alias="ENV")

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("app_locale")
    @classmethod
    def _blank_app_locale(cls, value: str | None) -> str | None:
        # An empty APP_LOCALE= line means "use the primary locale"
        if value is None:
            return None
        return value.strip() or None

    def get_site_locale_ids(self) -> list[str]:
        """Site locale ids, primary first, without duplicates."""
        others = [
            locale.strip()
            for locale in self.site_locales.split(",")
            if locale.strip() and locale.strip() != self.primary_locale
        ]
        return [self.primary_locale, *dict.fromkeys(others)]

    def get_app_locale(self) -> str:
        return self.app_locale or self.primary_locale


def find_env_file(start: Path | None = None) -> Path | None:
    """
    Locate the ``.env`` file to load.

    ``ELEMENTKIT_ENV_FILE`` wins when it points at a file; otherwise the working
    directory and then the directories above ``start`` (this package) are searched.
    """
    explicit = os.getenv(ENV_FILE_VARIABLE)
    if explicit and Path(explicit).is_file():
        return Path(explicit)

    here = (start or Path(__file__)).resolve()
    for directory in (Path.cwd(), *here.parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return candidate
    return None


_env_file = find_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
