"""Root conftest for the eabcert test suite."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from eabcert.core.errors import CommandError  # noqa: E402
from eabcert.core.runner import CommandResult  # noqa: E402

ACME_SERVER = "https://dv.acme-v02.test-api.pki.goog/directory"


# ---------------------------------------------------------------------------
# Config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def config_data(tmp_path: Path) -> dict:
    """Return a dict containing every required config field."""
    return {
        "project_id": "my-project",
        "user_email": "ops@example.com",
        "country": "US",
        "state": "California",
        "locality": "Mountain View",
        "organization": "Example Inc",
        "org_unit": "Platform",
        "common_name": "example.com",
        "acme_server": ACME_SERVER,
        "env": "staging",
        "work_dir": str(tmp_path),
    }


@pytest.fixture()
def config_file(tmp_path: Path, config_data: dict) -> Path:
    """Write *config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "eabcert.yaml"
    cfg.write_text(
        yaml.safe_dump(config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


@pytest.fixture()
def settings(config_data: dict):
    """Typed settings built straight from *config_data* (no file, no schema)."""
    from eabcert.config.settings import build_settings

    return build_settings(config_data)


# ---------------------------------------------------------------------------
# Recording command runner
# ---------------------------------------------------------------------------


@dataclass
class Call:
    argv: list[str]
    kwargs: dict[str, Any]


@dataclass
class _Rule:
    tokens: tuple[str, ...]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    raises: Exception | None = None
    effect: Callable[[list[str], dict[str, Any]], None] | None = None
    hits: int = field(default=0)


def _contains(argv: list[str], tokens: tuple[str, ...]) -> bool:
    n = len(tokens)
    return any(tuple(argv[i : i + n]) == tokens for i in range(len(argv) - n + 1))


class FakeRunner:
    """Stand-in for :class:`CommandRunner` that records every call.

    ``on(*tokens, ...)`` registers a canned outcome for any command whose
    argv contains *tokens* contiguously; the first matching rule wins and
    unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self._rules: list[_Rule] = []

    def on(self, *tokens: str, **outcome: Any) -> FakeRunner:
        self._rules.append(_Rule(tokens=tokens, **outcome))
        return self

    def run(self, argv, *, check: bool = True, **kwargs: Any) -> CommandResult:
        argv = list(argv)
        kwargs["check"] = check
        self.calls.append(Call(argv, kwargs))
        for rule in self._rules:
            if not _contains(argv, rule.tokens):
                continue
            rule.hits += 1
            if rule.effect is not None:
                rule.effect(argv, kwargs)
            if rule.raises is not None:
                raise rule.raises
            result = CommandResult(tuple(argv), rule.returncode, rule.stdout, rule.stderr)
            if check and not result.ok:
                raise CommandError(argv, rule.returncode, rule.stdout, rule.stderr)
            return result
        return CommandResult(tuple(argv), 0)

    def argvs(self) -> list[list[str]]:
        return [c.argv for c in self.calls]

    def called(self, *tokens: str) -> bool:
        return any(_contains(c.argv, tokens) for c in self.calls)

    def find(self, *tokens: str) -> Call:
        for c in self.calls:
            if _contains(c.argv, tokens):
                return c
        msg = f"no call containing {tokens}"
        raise AssertionError(msg)


@pytest.fixture()
def runner() -> FakeRunner:
    return FakeRunner()


# ---------------------------------------------------------------------------
# ConfigKit singleton and logger cleanup, autouse for a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the EabcertConfig singleton before and after every test."""
    from eabcert.config.eabcert_config import EabcertConfig

    EabcertConfig.reset()
    yield
    EabcertConfig.reset()


@pytest.fixture(autouse=True)
def fresh_logging():
    """Undo ``configure_logging`` so caplog sees ``eabcert`` records again."""
    yield
    logger = logging.getLogger("eabcert")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
