"""Command-line builder for ``certbot``.

Centralises the executable, the optional directory overrides and the
``sudo`` prefix so the registrar, issuer and renewal step all invoke
certbot the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from eabcert.config.settings import CertbotSettings, ToolSettings
    from eabcert.core.runner import CommandResult, CommandRunner


class Certbot:
    """Thin wrapper that builds and runs certbot subcommands."""

    def __init__(
        self,
        runner: CommandRunner,
        tools: ToolSettings,
        settings: CertbotSettings,
    ) -> None:
        self.runner = runner
        self.tools = tools
        self.settings = settings

    def argv(self, subcommand: str, *args: str, sudo: bool = False) -> list[str]:
        """Build ``[sudo] certbot <subcommand> [dir overrides] <args>``."""
        argv = [self.tools.sudo] if sudo else []
        argv += [self.tools.certbot, subcommand]
        for flag, value in (
            ("--config-dir", self.settings.config_dir),
            ("--work-dir", self.settings.work_dir),
            ("--logs-dir", self.settings.logs_dir),
        ):
            if value:
                argv += [flag, value]
        argv += list(args)
        return argv

    def run(
        self,
        subcommand: str,
        *args: str,
        sudo: bool = False,
        **kwargs: Any,  # noqa: ANN401
    ) -> CommandResult:
        """Run a certbot subcommand; *kwargs* go to :meth:`CommandRunner.run`."""
        return self.runner.run(self.argv(subcommand, *args, sudo=sudo), **kwargs)
