"""Tests for the DNS-01 hook handlers and TXT record polling."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import MagicMock, patch

import dns.exception
import dns.resolver
import pytest

from eabcert.acme.challenge import (
    DnsChallengeHook,
    challenge_record_name,
    txt_record_visible,
)
from eabcert.core.errors import CommandError, IssuanceBlockedError
from eabcert.core.types import ChallengeMode


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def challenge(settings):
    return replace(
        settings.challenge,
        mode=ChallengeMode.HOOK,
        timeout_seconds=30,
        poll_interval_seconds=10,
    )


def _hook(runner, challenge, probe, clock=None):
    clock = clock or FakeClock()
    return DnsChallengeHook(runner, challenge, probe=probe, clock=clock, sleep=clock.sleep)


def _rdata(*chunks: bytes):
    return MagicMock(strings=chunks)


class TestRecordName:
    def test_plain(self):
        assert challenge_record_name("example.com") == "_acme-challenge.example.com"

    def test_wildcard(self):
        assert challenge_record_name("*.example.com") == "_acme-challenge.example.com"


class TestTxtRecordVisible:
    def test_matching_record(self):
        with patch("dns.resolver.Resolver") as resolver_cls:
            resolver_cls.return_value.resolve.return_value = [_rdata(b"other"), _rdata(b"tok")]
            assert txt_record_visible("_acme-challenge.example.com", "tok")
            resolver_cls.return_value.resolve.assert_called_once_with(
                "_acme-challenge.example.com",
                "TXT",
            )

    def test_split_strings_are_joined(self):
        with patch("dns.resolver.Resolver") as resolver_cls:
            resolver_cls.return_value.resolve.return_value = [_rdata(b"to", b"k")]
            assert txt_record_visible("n", "tok")

    def test_mismatch(self):
        with patch("dns.resolver.Resolver") as resolver_cls:
            resolver_cls.return_value.resolve.return_value = [_rdata(b"old")]
            assert not txt_record_visible("n", "tok")

    @pytest.mark.parametrize(
        "exc",
        [
            dns.resolver.NXDOMAIN(),
            dns.resolver.NoAnswer(),
            dns.resolver.NoNameservers(),
            dns.exception.Timeout(),
        ],
    )
    def test_lookup_failures_are_not_visible(self, exc):
        with patch("dns.resolver.Resolver") as resolver_cls:
            resolver_cls.return_value.resolve.side_effect = exc
            assert not txt_record_visible("n", "tok")

    def test_custom_resolvers(self):
        with patch("dns.resolver.Resolver") as resolver_cls:
            resolver_cls.return_value.resolve.return_value = []
            txt_record_visible("n", "tok", resolvers=("8.8.8.8",), lifetime=3)
            assert resolver_cls.return_value.nameservers == ["8.8.8.8"]
            assert resolver_cls.return_value.lifetime == 3


class TestWaitForRecord:
    def test_visible_after_retry(self, runner, challenge, capsys):
        probe = MagicMock(side_effect=[False, True])
        clock = FakeClock()

        _hook(runner, challenge, probe, clock).wait_for_record("_acme-challenge.example.com", "tok")

        assert probe.call_count == 2
        assert clock.sleeps == [10]
        assert "TXT record _acme-challenge.example.com is live." in capsys.readouterr().out

    def test_times_out(self, runner, challenge):
        probe = MagicMock(return_value=False)
        clock = FakeClock()

        with pytest.raises(IssuanceBlockedError, match="within 30s"):
            _hook(runner, challenge, probe, clock).wait_for_record("n", "tok")

        assert sum(clock.sleeps) == 30
        assert probe.call_count == 4

    def test_last_sleep_is_clamped(self, runner, challenge):
        probe = MagicMock(return_value=False)
        clock = FakeClock()
        hook = _hook(runner, replace(challenge, timeout_seconds=25), probe, clock)

        with pytest.raises(IssuanceBlockedError):
            hook.wait_for_record("n", "tok")

        assert clock.sleeps == [10, 10, 5]

    def test_resolvers_passed_to_probe(self, runner, challenge):
        probe = MagicMock(return_value=True)
        hook = _hook(runner, replace(challenge, resolvers=("1.1.1.1",)), probe)

        hook.wait_for_record("n", "tok")

        probe.assert_called_once_with("n", "tok", ("1.1.1.1",), 10)


class TestAuthAndCleanup:
    def test_auth_announces_and_waits(self, runner, challenge, capsys):
        probe = MagicMock(return_value=True)

        _hook(runner, challenge, probe).auth("example.com", "tok-123")

        out = capsys.readouterr().out
        assert '_acme-challenge.example.com. TXT "tok-123"' in out
        assert runner.calls == []
        probe.assert_called_once()

    def test_auth_runs_publish_script(self, runner, challenge):
        probe = MagicMock(return_value=True)
        challenge = replace(challenge, publish_script="/usr/local/bin/dns-add")

        _hook(runner, challenge, probe).auth("www.example.com", "tok")

        assert runner.argvs() == [
            ["/usr/local/bin/dns-add", "www.example.com", "_acme-challenge.www.example.com", "tok"],
        ]
        assert runner.calls[0].kwargs["timeout"] == 60

    def test_publish_failure_skips_wait(self, runner, challenge):
        probe = MagicMock(return_value=True)
        runner.on("/usr/local/bin/dns-add", returncode=2, stderr="zone not found")
        challenge = replace(challenge, publish_script="/usr/local/bin/dns-add")

        with pytest.raises(CommandError, match="zone not found"):
            _hook(runner, challenge, probe).auth("example.com", "tok")
        probe.assert_not_called()

    def test_cleanup_without_script(self, runner, challenge):
        _hook(runner, challenge, MagicMock()).cleanup("example.com")
        assert runner.calls == []

    def test_cleanup_runs_script(self, runner, challenge):
        challenge = replace(challenge, cleanup_script="/usr/local/bin/dns-del")

        _hook(runner, challenge, MagicMock()).cleanup("*.example.com")

        assert runner.argvs() == [
            ["/usr/local/bin/dns-del", "*.example.com", "_acme-challenge.example.com"],
        ]

    def test_default_timeout(self, runner, settings):
        hook = DnsChallengeHook(runner, settings.challenge)
        assert hook.timeout == 600
