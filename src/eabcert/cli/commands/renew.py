"""``eabcert renew``: renew the certificate once it is due."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


def run_renew(args, config=None) -> None:  # noqa: ARG001
    """Check expiry and renew with the configured strategy."""
    from eabcert.core.runner import CommandRunner
    from eabcert.workflow import IssuanceWorkflow, RenewalWorkflow

    if config is None:
        from eabcert.config import get_config

        config = get_config()

    settings = config.settings
    runner = CommandRunner(cwd=settings.work_dir)

    def reissue() -> None:
        IssuanceWorkflow(settings, runner, config_path=config.source).run()

    renewed = RenewalWorkflow(settings, runner, reissue=reissue).run()
    log.debug("Renewal performed: %s", renewed)
