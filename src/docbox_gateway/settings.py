"""Gateway configuration settings.

GatewaySettings holds the static, environment-derived half of the gateway
configuration (upstream address, mount point, timeouts, logging). It is a
plain dataclass so tests can inject config without touching os.environ.
The callback half lives on GatewayOptions.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse

DEFAULT_BASE_PATH = "/"
DEFAULT_TIMEOUT_SECONDS = 30.0

_VALID_ENVIRONMENTS = frozenset({"local", "dev", "staging", "production"})
_VALID_LOG_FORMATS = frozenset({"json", "console"})


def normalize_base_path(base_path: str | None) -> str:
    """Strip trailing slashes so route patterns can be joined with ``/box``.

    ``"/"`` (the default) normalizes to the empty prefix.
    """
    if base_path is None:
        base_path = DEFAULT_BASE_PATH
    return base_path.rstrip("/")


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """Static configuration for the docbox gateway.

    All fields except ``docbox_base_url`` have defaults suitable for local
    development.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    # ── Upstream ───────────────────────────────────────────────────
    docbox_base_url: str = ""
    """Internal address of the docbox server. Never returned to callers."""

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    """Default httpx timeout for calls to docbox."""

    # ── Routing ────────────────────────────────────────────────────
    base_path: str = DEFAULT_BASE_PATH
    """External prefix the /box routes are mounted under."""

    # ── Observability ──────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"
    metrics_enabled: bool = True

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    @property
    def normalized_base_path(self) -> str:
        return normalize_base_path(self.base_path)

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if self.environment not in _VALID_ENVIRONMENTS:
            errors.append(f"unknown environment: {self.environment!r}")

        if not self.docbox_base_url:
            errors.append(f"{self.environment}: docbox_base_url is required")
        else:
            parsed = urlparse(self.docbox_base_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(
                    f"{self.environment}: docbox_base_url must be an http(s) URL"
                )

        if not self.base_path.startswith("/"):
            errors.append(f"base_path must start with '/': {self.base_path!r}")

        if self.timeout_seconds <= 0:
            errors.append("timeout_seconds must be positive")

        if self.log_format not in _VALID_LOG_FORMATS:
            errors.append(
                f"log_format must be one of {sorted(_VALID_LOG_FORMATS)}: "
                f"{self.log_format!r}"
            )
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> GatewaySettings:
        """Build settings from environment variables.

        Convenience factory for production use. Tests should construct
        GatewaySettings directly.
        """
        if env is None:
            env = dict(os.environ)

        timeout_raw = env.get("DOCBOX_TIMEOUT_SECONDS", "")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            raise ValueError(
                f"Invalid DOCBOX_TIMEOUT_SECONDS={timeout_raw!r}: must be a number"
            )

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            docbox_base_url=env.get("DOCBOX_BASE_URL", ""),
            timeout_seconds=timeout,
            base_path=env.get("DOCBOX_BASE_PATH", DEFAULT_BASE_PATH) or DEFAULT_BASE_PATH,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_format=env.get("LOG_FORMAT", "json"),
            metrics_enabled=_parse_bool(env.get("DOCBOX_METRICS_ENABLED"), True),
        )
