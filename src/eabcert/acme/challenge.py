"""DNS-01 challenge hooks for certbot's manual mode.

certbot runs ``eabcert hook auth`` once per identifier with
``CERTBOT_DOMAIN`` and ``CERTBOT_VALIDATION`` in the environment, and
``eabcert hook cleanup`` after validation.  The auth hook is the
completion signal for the challenge: it announces the exact record,
optionally runs the operator's ``publish_script``, then polls DNS until
the TXT record is visible and only then lets certbot continue.  Running
out of ``timeout_seconds`` fails the hook, which makes certbot abort.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

import dns.exception
import dns.resolver

from eabcert.core import console
from eabcert.core.errors import IssuanceBlockedError

if TYPE_CHECKING:
    from eabcert.config.settings import ChallengeSettings
    from eabcert.core.runner import CommandRunner

log = logging.getLogger(__name__)

CHALLENGE_LABEL = "_acme-challenge"

_DEFAULT_WAIT_SECONDS = 600


def challenge_record_name(domain: str) -> str:
    """``_acme-challenge.<domain>``, with any wildcard prefix stripped."""
    return f"{CHALLENGE_LABEL}.{domain.removeprefix('*.')}"


def txt_record_visible(
    name: str,
    value: str,
    resolvers: Sequence[str] = (),
    lifetime: float = 10,
) -> bool:
    """Return whether *name* currently has a TXT record equal to *value*."""
    resolver = dns.resolver.Resolver()
    if resolvers:
        resolver.nameservers = list(resolvers)
    resolver.lifetime = lifetime

    try:
        answer = resolver.resolve(name, "TXT")
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        log.debug("No TXT record at %s yet", name)
        return False
    except dns.resolver.NoNameservers:
        log.debug("No nameserver answered for %s", name)
        return False
    except dns.exception.Timeout:
        log.debug("TXT query for %s timed out after %ss", name, lifetime)
        return False
    except dns.exception.DNSException as exc:
        log.warning("DNS error querying %s: %s", name, exc)
        return False

    for rdata in answer:
        text = b"".join(rdata.strings).decode("ascii", errors="replace")
        if text == value:
            return True
    log.debug("TXT record at %s does not match the expected value yet", name)
    return False


class DnsChallengeHook:
    """Publish and await, or clean up, one DNS-01 TXT record.

    Parameters
    ----------
    runner:
        Command boundary for the operator scripts.
    settings:
        The ``challenge`` configuration section.
    probe:
        DNS visibility check, :func:`txt_record_visible` by default.
    clock, sleep:
        Time sources (tests).

    """

    def __init__(  # noqa: PLR0913
        self,
        runner: CommandRunner,
        settings: ChallengeSettings,
        *,
        probe: Callable[..., bool] = txt_record_visible,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.runner = runner
        self.settings = settings
        self._probe = probe
        self._clock = clock
        self._sleep = sleep

    @property
    def timeout(self) -> int:
        return self.settings.timeout_seconds or _DEFAULT_WAIT_SECONDS

    def auth(self, domain: str, validation: str) -> None:
        """Announce, publish and wait for the TXT record of *domain*."""
        name = challenge_record_name(domain)
        console.status("Publish the following DNS TXT record:")
        console.detail(f'{name}. TXT "{validation}"')

        if self.settings.publish_script:
            log.info("DNS create: %s via %s", name, self.settings.publish_script)
            self.runner.run(
                [self.settings.publish_script, domain, name, validation],
                timeout=self.settings.script_timeout_seconds,
            )

        self.wait_for_record(name, validation)

    def wait_for_record(self, name: str, value: str) -> None:
        """Poll DNS until *name* carries *value*.

        Raises
        ------
        IssuanceBlockedError
            If the record is not visible within :attr:`timeout` seconds.

        """
        deadline = self._clock() + self.timeout
        interval = self.settings.poll_interval_seconds
        attempts = 0
        while True:
            attempts += 1
            if self._probe(name, value, self.settings.resolvers, interval):
                console.status(f"TXT record {name} is live.")
                log.info("TXT record %s visible after %d check(s)", name, attempts)
                return
            remaining = deadline - self._clock()
            if remaining <= 0:
                msg = f"TXT record {name} was not visible within {self.timeout}s"
                raise IssuanceBlockedError(msg)
            self._sleep(min(interval, remaining))

    def cleanup(self, domain: str) -> None:
        """Remove the TXT record of *domain* through ``cleanup_script``."""
        name = challenge_record_name(domain)
        if not self.settings.cleanup_script:
            log.info("No cleanup_script configured; leaving %s in place", name)
            return
        log.info("DNS delete: %s via %s", name, self.settings.cleanup_script)
        self.runner.run(
            [self.settings.cleanup_script, domain, name],
            timeout=self.settings.script_timeout_seconds,
        )
