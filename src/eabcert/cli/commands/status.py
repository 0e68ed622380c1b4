"""``eabcert status``: describe the issued certificate bundle."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta


def run_status(args, config=None) -> None:  # noqa: ARG001
    """Print the bundle for the configured environment as JSON."""
    from eabcert.tls.expiry import needs_renewal
    from eabcert.tls.inspect import describe_bundle

    if config is None:
        from eabcert.config import get_config

        config = get_config()

    settings = config.settings
    result = describe_bundle(settings.layout.bundle())
    not_after = datetime.fromisoformat(result["not_after"])
    result["renewal_due"] = needs_renewal(
        not_after,
        datetime.now(UTC),
        timedelta(days=settings.renewal.margin_days),
    )
    print(json.dumps(result, indent=2))  # noqa: T201
