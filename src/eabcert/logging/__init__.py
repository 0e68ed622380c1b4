"""Logging subsystem for eabcert.

Public API::

    from eabcert.logging import configure_logging

    configure_logging(settings.logging, env=settings.env)
"""

from eabcert.logging.setup import configure_logging

__all__ = ["configure_logging"]
