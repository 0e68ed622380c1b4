"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

The ten workflow fields (project, account email, subject fields, ACME
server and environment tag) have no defaults at all: the schema marks
them required and the builders index them directly.

Access pattern::

    from eabcert.config import get_config

    settings = get_config().settings
    print(settings.subject.common_name, settings.layout.csr)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from eabcert.core.types import ChallengeMode, EnvLayout, RenewalStrategy

# ---------------------------------------------------------------------------
# Certificate subject
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubjectSettings:
    """X.509 subject fields for the CSR, in DN order."""

    country: str
    state: str
    locality: str
    organization: str
    org_unit: str
    common_name: str
    email: str


def _build_subject(d: dict) -> SubjectSettings:
    return SubjectSettings(
        country=d["country"],
        state=d["state"],
        locality=d["locality"],
        organization=d["organization"],
        org_unit=d["org_unit"],
        common_name=d["common_name"],
        email=d["user_email"],
    )


# ---------------------------------------------------------------------------
# Key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeySettings:
    """RSA modulus size for freshly generated keys."""

    size: int


def _build_key(data: dict | None) -> KeySettings:
    d = data or {}
    return KeySettings(size=d.get("size", 4096))


# ---------------------------------------------------------------------------
# External tools
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolSettings:
    """Binary names or paths of the external tools."""

    gcloud: str
    certbot: str
    openssl: str
    sudo: str


def _build_tools(data: dict | None) -> ToolSettings:
    d = data or {}
    return ToolSettings(
        gcloud=d.get("gcloud", "gcloud"),
        certbot=d.get("certbot", "certbot"),
        openssl=d.get("openssl", "openssl"),
        sudo=d.get("sudo", "sudo"),
    )


@dataclass(frozen=True)
class GcloudSettings:
    """Google Cloud IAM / Public CA provisioning options."""

    member_type: str
    release_track: str
    role: str
    service: str


def _build_gcloud(data: dict | None) -> GcloudSettings:
    d = data or {}
    return GcloudSettings(
        member_type=d.get("member_type", "user"),
        release_track=d.get("release_track", "alpha"),
        role=d.get("role", "roles/publicca.externalAccountKeyCreator"),
        service=d.get("service", "publicca.googleapis.com"),
    )


@dataclass(frozen=True)
class CertbotSettings:
    """Certbot directory overrides and privilege options."""

    config_dir: str | None
    work_dir: str | None
    logs_dir: str | None
    sudo_unregister: bool


def _build_certbot(data: dict | None) -> CertbotSettings:
    d = data or {}
    return CertbotSettings(
        config_dir=d.get("config_dir"),
        work_dir=d.get("work_dir"),
        logs_dir=d.get("logs_dir"),
        sudo_unregister=d.get("sudo_unregister", True),
    )


@dataclass(frozen=True)
class InstallerSettings:
    """Package manager behaviour for missing prerequisites."""

    assume_yes: bool


def _build_installer(data: dict | None) -> InstallerSettings:
    d = data or {}
    return InstallerSettings(assume_yes=d.get("assume_yes", True))


# ---------------------------------------------------------------------------
# Challenge
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChallengeSettings:
    """DNS-01 challenge completion settings."""

    mode: ChallengeMode
    timeout_seconds: int | None
    poll_interval_seconds: int
    resolvers: tuple[str, ...]
    publish_script: str | None
    cleanup_script: str | None
    script_timeout_seconds: int


def _build_challenge(data: dict | None) -> ChallengeSettings:
    d = data or {}
    return ChallengeSettings(
        mode=ChallengeMode(d.get("mode", "manual")),
        timeout_seconds=d.get("timeout_seconds"),
        poll_interval_seconds=d.get("poll_interval_seconds", 10),
        resolvers=tuple(d.get("resolvers", [])),
        publish_script=d.get("publish_script"),
        cleanup_script=d.get("cleanup_script"),
        script_timeout_seconds=d.get("script_timeout_seconds", 60),
    )


# ---------------------------------------------------------------------------
# Renewal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RenewalSettings:
    """How and when an existing certificate is renewed."""

    strategy: RenewalStrategy
    margin_days: int


def _build_renewal(data: dict | None) -> RenewalSettings:
    d = data or {}
    return RenewalSettings(
        strategy=RenewalStrategy(d.get("strategy", "certbot_renew")),
        margin_days=d.get("margin_days", 0),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format)."""

    level: str
    format: str


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EabcertSettings:
    """Root settings tree."""

    project_id: str
    user_email: str
    acme_server: str
    env: str
    work_dir: Path
    subject: SubjectSettings
    key: KeySettings
    tools: ToolSettings
    gcloud: GcloudSettings
    certbot: CertbotSettings
    installer: InstallerSettings
    challenge: ChallengeSettings
    renewal: RenewalSettings
    logging: LoggingSettings

    @property
    def layout(self) -> EnvLayout:
        """File names for the configured environment."""
        return EnvLayout(work_dir=self.work_dir, env=self.env)


def build_settings(data: dict[str, Any]) -> EabcertSettings:
    """Materialise the typed settings tree from validated config data."""
    return EabcertSettings(
        project_id=data["project_id"],
        user_email=data["user_email"],
        acme_server=data["acme_server"],
        env=data["env"],
        work_dir=Path(data.get("work_dir", ".")).absolute(),
        subject=_build_subject(data),
        key=_build_key(data.get("key")),
        tools=_build_tools(data.get("tools")),
        gcloud=_build_gcloud(data.get("gcloud")),
        certbot=_build_certbot(data.get("certbot")),
        installer=_build_installer(data.get("installer")),
        challenge=_build_challenge(data.get("challenge")),
        renewal=_build_renewal(data.get("renewal")),
        logging=_build_logging(data.get("logging")),
    )
