"""Prerequisite installer.

Makes sure the external tools the workflow shells out to are on the
``PATH``, installing any that are missing through the platform package
manager.  The package manager is chosen from a small strategy table
keyed by OS family:

- ``darwin`` -- Homebrew (``brew install <package>``)
- ``linux``  -- apt (``sudo apt-get install <package>``)

Any other platform is fatal (:class:`UnsupportedPlatformError`).

Usage::

    installer = PrerequisiteInstaller(runner, settings.installer, settings.tools)
    installer.ensure_all(required_tools(settings.tools))
"""

from __future__ import annotations

import abc
import logging
import shutil
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from eabcert.core import console
from eabcert.core.errors import UnsupportedPlatformError
from eabcert.core.types import OsFamily

if TYPE_CHECKING:
    from eabcert.config.settings import InstallerSettings, ToolSettings
    from eabcert.core.runner import CommandRunner

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tool:
    """An external tool: display name, executable and package name."""

    name: str
    command: str
    package: str


def required_tools(tools: ToolSettings) -> tuple[Tool, ...]:
    """Return the tools the issuance workflow installs when missing."""
    return (
        Tool(name="Certbot", command=tools.certbot, package="certbot"),
        Tool(name="OpenSSL", command=tools.openssl, package="openssl"),
    )


# ---------------------------------------------------------------------------
# Installer strategies
# ---------------------------------------------------------------------------


class PackageInstaller(abc.ABC):
    """Install a package with the platform package manager."""

    family: ClassVar[OsFamily]

    def __init__(
        self,
        runner: CommandRunner,
        settings: InstallerSettings,
        tools: ToolSettings,
    ) -> None:
        self.runner = runner
        self.settings = settings
        self.tools = tools

    @abc.abstractmethod
    def install_argv(self, package: str) -> list[str]:
        """Return the command line that installs *package*."""

    def install(self, package: str) -> None:
        """Install *package*; a failing package manager raises ``CommandError``."""
        log.info("Installing %s with %s", package, type(self).__name__)
        self.runner.run(self.install_argv(package), capture=False)


class BrewInstaller(PackageInstaller):
    """Homebrew, for macOS hosts."""

    family = OsFamily.DARWIN

    def install_argv(self, package: str) -> list[str]:
        return ["brew", "install", package]


class AptInstaller(PackageInstaller):
    """apt-get under sudo, for Debian-family Linux hosts."""

    family = OsFamily.LINUX

    def install_argv(self, package: str) -> list[str]:
        argv = [self.tools.sudo, "apt-get", "install"]
        if self.settings.assume_yes:
            argv.append("-y")
        argv.append(package)
        return argv


_STRATEGIES: dict[OsFamily, type[PackageInstaller]] = {
    OsFamily.DARWIN: BrewInstaller,
    OsFamily.LINUX: AptInstaller,
}


def detect_os_family(platform: str | None = None) -> OsFamily:
    """Map ``sys.platform`` (or *platform*) to a supported :class:`OsFamily`.

    Raises
    ------
    UnsupportedPlatformError
        For anything that is neither macOS nor Linux.

    """
    name = platform if platform is not None else sys.platform
    for family in OsFamily:
        if name.startswith(family.value):
            return family
    raise UnsupportedPlatformError(name)


def load_installer(
    family: OsFamily,
    runner: CommandRunner,
    settings: InstallerSettings,
    tools: ToolSettings,
) -> PackageInstaller:
    """Instantiate the installer strategy registered for *family*."""
    try:
        cls = _STRATEGIES[family]
    except KeyError:
        raise UnsupportedPlatformError(str(family)) from None
    return cls(runner, settings, tools)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


class PrerequisiteInstaller:
    """Ensure each required tool is available, installing only when absent.

    Parameters
    ----------
    runner:
        Command boundary used for the package manager.
    settings, tools:
        The ``installer`` and ``tools`` configuration sections.
    platform:
        Override for ``sys.platform`` (tests).
    which:
        ``PATH`` lookup, :func:`shutil.which` by default.

    """

    def __init__(  # noqa: PLR0913
        self,
        runner: CommandRunner,
        settings: InstallerSettings,
        tools: ToolSettings,
        *,
        platform: str | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.family = detect_os_family(platform)
        self.strategy = load_installer(self.family, runner, settings, tools)
        self._which = which

    def is_installed(self, tool: Tool) -> bool:
        return self._which(tool.command) is not None

    def ensure(self, tool: Tool) -> bool:
        """Install *tool* if it is missing.

        Returns ``True`` when an installation was performed.
        """
        if self.is_installed(tool):
            console.status(f"{tool.name} already installed.")
            return False
        console.status(f"Installing {tool.name}...")
        self.strategy.install(tool.package)
        return True

    def ensure_all(self, tools: Iterable[Tool]) -> list[Tool]:
        """Ensure every tool in order; return the ones that were installed."""
        return [tool for tool in tools if self.ensure(tool)]
