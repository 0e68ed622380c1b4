"""eabcert configuration loader built on ConfigKit.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    EabcertConfig(config_file="eabcert.yaml", schema_file="bundled")

    # 2. Any module retrieves it afterwards
    from eabcert.config import get_config
    cfg = get_config()
    cfg.settings.subject.common_name  # typed access

    # 3. Dynamic access
    cfg.get("challenge.mode", default="manual")
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path, PurePosixPath
from typing import Any

from configkit import ConfigKit, ConfigKitMeta

from eabcert.config.settings import EabcertSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_COUNTRY_RE = re.compile(r"^[A-Za-z]{2}$")

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: EabcertConfig | None = None


def get_config() -> EabcertConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`EabcertConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "EabcertConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(
            msg,
        )
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class EabcertConfig(ConfigKit):
    """Central configuration for one eabcert invocation.

    Subclasses :class:`configkit.ConfigKit`.  The JSON schema is
    bundled at ``config/schema.json``; users supply only ``config_file``.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(
        self,
        *,
        config_file: str | Path,
        schema_file: str | Path | None = None,  # noqa: ARG002
    ) -> None:
        """Initialise the eabcert configuration singleton.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file.
        schema_file:
            Ignored.  Exists only to satisfy the
            :class:`ConfigKitMeta` singleton guard.

        """
        global _instance  # noqa: PLW0603

        super().__init__(
            config_file=config_file,
            schema_file=_SCHEMA_PATH,
        )

        self._settings: EabcertSettings = build_settings(self.data)
        self._source = str(config_file)
        _instance = self

    # -- lifecycle overrides ------------------------------------------------

    def _load(self) -> None:
        """Load config file then resolve ``${VAR}`` env-var references.

        Runs env-var resolution **before** schema validation so that
        substituted values are checked against the schema too.
        """
        super()._load()
        _resolve_env_vars(self._data)  # noqa: SLF001

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> EabcertSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def source(self) -> str:
        """Path of the file this configuration was loaded from."""
        return self._source

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation.

        Called automatically by ConfigKit **after** schema validation
        passes.
        """
        errors: list[str] = []
        warnings: list[str] = []

        # -- ACME server --
        server = self.data.get("acme_server", "")
        if not server.startswith("https://"):
            errors.append(f"acme_server must be an https:// URL (got '{server}')")

        # -- environment tag --
        env = self.data.get("env", "")
        parts = PurePosixPath(env).parts
        if len(parts) != 1 or parts[0] in (".", "..", "/") or "\\" in env:
            errors.append(
                f"env must be a single directory name (got '{env}')",
            )

        # -- subject --
        email = self.data.get("user_email", "")
        if "@" not in email:
            errors.append(f"user_email is not an email address (got '{email}')")
        country = self.data.get("country", "")
        if not _COUNTRY_RE.match(country):
            errors.append(
                f"country must be a two-letter ISO 3166 code (got '{country}')",
            )

        # -- challenge --
        challenge = self.data.get("challenge") or {}
        if challenge.get("mode", "manual") == "hook" and not challenge.get("timeout_seconds"):
            errors.append(
                "challenge.timeout_seconds is required when challenge.mode is 'hook'",
            )
        if challenge.get("mode", "manual") == "manual" and (
            challenge.get("publish_script") or challenge.get("cleanup_script")
        ):
            warnings.append(
                "challenge.publish_script/cleanup_script are only used when "
                "challenge.mode is 'hook'; they are ignored in 'manual' mode",
            )

        # -- renewal --
        renewal = self.data.get("renewal") or {}
        if renewal.get("margin_days", 0) > 0:
            warnings.append(
                f"renewal.margin_days is {renewal['margin_days']}; certificates "
                "will be renewed before they expire rather than after",
            )
        if (
            renewal.get("strategy", "certbot_renew") == "certbot_renew"
            and challenge.get("mode", "manual") == "manual"
        ):
            warnings.append(
                "renewal.strategy 'certbot_renew' relies on certbot completing "
                "the challenge on its own, but issuance uses the manual DNS-01 "
                "flow; consider renewal.strategy 'reissue'",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None
        ConfigKitMeta.reset()

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"<EabcertConfig config_file={self._source}>"
