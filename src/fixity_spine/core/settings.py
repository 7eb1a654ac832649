"""Settings for fixity runs.

Every value can come from the environment (``FIXITY_`` prefix) or a ``.env``
file, and the CLI overrides individual fields on top.

Examples:
    >>> from fixity_spine.core.settings import FixitySettings
    >>> settings = FixitySettings(server_location="http://storage-master.example.org:70")
    >>> settings.required_copies
    2
    >>> settings.package_url_prefix
    'http://storage-master.example.org:70/packages/'

Fields
──────
server_location         : Canonical storage-master URL; package URLs are built from it
store_master_db_url     : SQLAlchemy URL of the store-master copy database
daitss_db_url           : SQLAlchemy URL of the DAITSS package database
required_copies         : Number of pool copies every package must have
expiration_days         : Age after which a copy's fixity is considered expired
stale_days              : Grace period for copies still propagating between pools
store_master_page_size  : Rows per page for the store-master query
daitss_page_size        : Rows per page for the DAITSS query
http_connect_timeout    : Seconds to wait for a pool to accept a connection
http_read_timeout       : Seconds to wait on a pool's fixity feed
agent_id                : Agent identity written on audit events
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fixity_spine.core.errors import MissingConfigError

DEFAULT_AGENT_ID = "info:fcla/daitss/storage-master"


def package_url_prefix(server_location: str | None) -> str:
    """
    The prefix that turns a package name into its canonical storage URL,
    ``<server_location>/packages/``. Pool feeds, the store-master and DAITSS
    are all joined on URLs built from it.
    """
    if not server_location:
        raise MissingConfigError(
            "server_location",
            "The storage master location has not been set up; use "
            "FIXITY_SERVER_LOCATION=http://server.example.com",
        )
    return server_location.rstrip("/") + "/packages/"


class FixitySettings(BaseSettings):
    """Configuration for one reconciliation run."""

    model_config = SettingsConfigDict(
        env_prefix="FIXITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Audited systems ──────────────────────────────────────────
    server_location: str | None = None
    store_master_db_url: str | None = None
    daitss_db_url: str | None = None

    # ── Policy ───────────────────────────────────────────────────
    required_copies: int = Field(default=2, ge=1)
    expiration_days: int = Field(default=45, ge=0)
    stale_days: int = Field(default=0, ge=0)

    # ── Fetching ─────────────────────────────────────────────────
    store_master_page_size: int = Field(default=5000, ge=1)
    daitss_page_size: int = Field(default=2000, ge=1)
    http_connect_timeout: float = 60.0 * 15
    http_read_timeout: float = 60.0 * 60

    # ── Events ───────────────────────────────────────────────────
    agent_id: str = DEFAULT_AGENT_ID

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    pid_directory: Path | None = None

    @field_validator("server_location")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None

    @property
    def package_url_prefix(self) -> str:
        """The prefix that turns a package name into its canonical URL."""
        return package_url_prefix(self.server_location)

    def no_later_than(self, now: datetime | None = None) -> datetime:
        """Copies put after this moment are too fresh to judge."""
        now = now or datetime.now(UTC)
        return now - timedelta(days=self.stale_days)

    def require(self, *names: str) -> None:
        """Raise MissingConfigError for the first unset field in ``names``."""
        for name in names:
            if not getattr(self, name):
                raise MissingConfigError(name)
