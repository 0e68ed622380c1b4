"""``eabcert issue``: run the full first-issuance workflow."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


def run_issue(args, config=None) -> None:  # noqa: ARG001
    """Provision credentials, generate a key/CSR and issue a certificate."""
    from eabcert.core.runner import CommandRunner
    from eabcert.workflow import IssuanceWorkflow

    if config is None:
        from eabcert.config import get_config

        config = get_config()

    settings = config.settings
    workflow = IssuanceWorkflow(
        settings,
        CommandRunner(cwd=settings.work_dir),
        config_path=config.source,
    )
    bundle = workflow.run()
    log.info(
        "Certificate %s, intermediate %s, full chain %s",
        bundle.leaf,
        bundle.intermediate,
        bundle.full_chain,
    )
