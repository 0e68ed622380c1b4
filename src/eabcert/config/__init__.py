"""Configuration subsystem for eabcert.

Public API::

    from eabcert.config import get_config, EabcertConfig

    # At startup (CLI only):
    EabcertConfig(config_file="eabcert.yaml", schema_file="bundled")

    # Everywhere else:
    cfg = get_config()
    env = cfg.settings.env                  # typed access
    mode = cfg.get("challenge.mode", default="manual")  # dot-path
"""

from eabcert.config.eabcert_config import (
    ConfigValidationError,
    EabcertConfig,
    get_config,
)
from eabcert.config.settings import (
    CertbotSettings,
    ChallengeSettings,
    EabcertSettings,
    GcloudSettings,
    InstallerSettings,
    KeySettings,
    LoggingSettings,
    RenewalSettings,
    SubjectSettings,
    ToolSettings,
)

__all__ = [
    "CertbotSettings",
    "ChallengeSettings",
    "ConfigValidationError",
    "EabcertConfig",
    "EabcertSettings",
    "GcloudSettings",
    "InstallerSettings",
    "KeySettings",
    "LoggingSettings",
    "RenewalSettings",
    "SubjectSettings",
    "ToolSettings",
    "get_config",
]
