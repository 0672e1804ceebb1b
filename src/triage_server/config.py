"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # Queue document (None → TRIAGE_DATA_FILE or data/patients.json)
    data_file: str | None = None

    # Which question catalog the self-assessment walks (None → TRIAGE_CATALOG or "vitals")
    catalog: str | None = None

    # Ruleset directory (None → CatalogStore default, which is v1/ from repo root)
    ruleset_dir: str | None = None

    # Idle lifetime of an unadmitted assessment, in minutes.
    # 0 means sessions are kept until admitted.
    session_ttl_minutes: int = 60


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*``, ``TRIAGE_*`` and ``SESSION_*`` env vars."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "3000")),
        cors_origins=origins,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        data_file=os.getenv("TRIAGE_DATA_FILE") or None,
        catalog=os.getenv("TRIAGE_CATALOG") or None,
        ruleset_dir=os.getenv("TRIAGE_RULESET_DIR") or None,
        session_ttl_minutes=int(os.getenv("SESSION_TTL_MINUTES", "60")),
    )
