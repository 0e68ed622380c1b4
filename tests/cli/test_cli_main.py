"""Tests for the eabcert CLI entry point (eabcert.cli.main).

``main()`` and the command handlers use deferred imports, so patches
target the *source* module (e.g. ``eabcert.workflow.IssuanceWorkflow``),
not ``eabcert.cli.main``.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from eabcert.cli.main import _build_parser, main
from eabcert.core.errors import PermissionDeniedError, RenewalError
from eabcert.core.types import CertificateBundle


def _exit_code(argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParser:
    def test_hook_subcommands(self):
        args = _build_parser().parse_args(["-c", "x.yaml", "hook", "auth"])
        assert args.command == "hook"
        assert args.hook_command == "auth"

    def test_config_required(self, capsys):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["issue"])
        assert "--config" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "eabcert 1.0.0" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Config handling
# ---------------------------------------------------------------------------


class TestConfigHandling:
    def test_missing_config_file(self, tmp_path, capsys):
        assert _exit_code(["-c", str(tmp_path / "nope.yaml"), "issue"]) == 1
        assert "configuration file not found" in capsys.readouterr().err

    def test_validate_only(self, config_file, capsys):
        assert _exit_code(["-c", str(config_file), "--validate-only"]) == 0
        out = capsys.readouterr().out
        assert "Configuration OK" in out
        assert "example.com" in out

    def test_cross_field_error(self, tmp_path, config_data, capsys):
        config_data["acme_server"] = "http://insecure.test/directory"
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump(config_data), encoding="utf-8")

        assert _exit_code(["-c", str(path), "issue"]) == 1
        assert "acme_server must be an https:// URL" in capsys.readouterr().err

    def test_schema_error(self, tmp_path, config_data, capsys):
        del config_data["common_name"]
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump(config_data), encoding="utf-8")

        assert _exit_code(["-c", str(path), "issue"]) == 1
        assert "failed to load configuration" in capsys.readouterr().err

    def test_no_command(self, config_file):
        assert _exit_code(["-c", str(config_file)]) == 1


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestIssue:
    def test_runs_issuance_workflow(self, config_file, tmp_path):
        bundle = CertificateBundle(
            leaf=tmp_path / "c.pem",
            intermediate=tmp_path / "i.pem",
            full_chain=tmp_path / "f.pem",
        )
        with patch("eabcert.workflow.IssuanceWorkflow") as workflow_cls:
            workflow_cls.return_value.run.return_value = bundle
            main(["-c", str(config_file), "issue"])

        workflow_cls.assert_called_once()
        _, kwargs = workflow_cls.call_args
        assert kwargs["config_path"] == str(config_file)
        workflow_cls.return_value.run.assert_called_once_with()

    def test_relative_work_dir_not_applied_twice(self, tmp_path, config_data, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config_data["work_dir"] = "certs"
        path = tmp_path / "relative.yaml"
        path.write_text(yaml.safe_dump(config_data), encoding="utf-8")

        with patch("eabcert.workflow.IssuanceWorkflow") as workflow_cls:
            main(["-c", str(path), "issue"])

        settings, runner = workflow_cls.call_args.args
        assert runner.cwd == tmp_path / "certs"
        assert settings.layout.private_key == tmp_path / "certs" / "staging" / "private_staging.key"

    def test_fatal_error_exits_1(self, config_file, capsys):
        with patch("eabcert.workflow.IssuanceWorkflow") as workflow_cls:
            workflow_cls.return_value.run.side_effect = PermissionDeniedError("binding refused")
            assert _exit_code(["-c", str(config_file), "issue"]) == 1

        assert "eabcert: error: binding refused" in capsys.readouterr().err

    def test_debug_reraises(self, config_file):
        with patch("eabcert.workflow.IssuanceWorkflow") as workflow_cls:
            workflow_cls.return_value.run.side_effect = PermissionDeniedError("binding refused")
            with pytest.raises(PermissionDeniedError):
                main(["-c", str(config_file), "--debug", "issue"])


class TestRenew:
    def test_runs_renewal_workflow(self, config_file):
        with patch("eabcert.workflow.RenewalWorkflow") as renewal_cls:
            renewal_cls.return_value.run.return_value = False
            main(["-c", str(config_file), "renew"])

        renewal_cls.return_value.run.assert_called_once_with()
        assert callable(renewal_cls.call_args.kwargs["reissue"])

    def test_renewal_error_reported(self, config_file, capsys):
        with patch("eabcert.workflow.RenewalWorkflow") as renewal_cls:
            renewal_cls.return_value.run.side_effect = RenewalError("no issuance workflow")
            assert _exit_code(["-c", str(config_file), "renew"]) == 1

        assert "eabcert: error: no issuance workflow" in capsys.readouterr().err

    def test_reissue_callback_runs_issuance(self, config_file):
        with (
            patch("eabcert.workflow.RenewalWorkflow") as renewal_cls,
            patch("eabcert.workflow.IssuanceWorkflow") as issuance_cls,
        ):
            main(["-c", str(config_file), "renew"])
            renewal_cls.call_args.kwargs["reissue"]()

        issuance_cls.return_value.run.assert_called_once_with()


class TestStatus:
    def test_prints_bundle_json(self, config_file, capsys):
        info = {"certificate": "c.pem", "not_after": "2000-01-01T00:00:00+00:00"}
        with patch("eabcert.tls.inspect.describe_bundle", return_value=info) as describe:
            main(["-c", str(config_file), "status"])

        bundle = describe.call_args.args[0]
        assert bundle.leaf.name == "certificate_staging.pem"
        printed = json.loads(capsys.readouterr().out)
        assert printed["renewal_due"] is True

    def test_command_reads_loaded_config(self, config_file, capsys):
        from eabcert.cli.commands.status import run_status
        from eabcert.config import EabcertConfig

        EabcertConfig(config_file=str(config_file), schema_file="bundled")
        info = {"certificate": "c.pem", "not_after": "2999-01-01T00:00:00+00:00"}
        with patch("eabcert.tls.inspect.describe_bundle", return_value=info) as describe:
            run_status(argparse.Namespace())

        assert describe.call_args.args[0].leaf.name == "certificate_staging.pem"
        assert json.loads(capsys.readouterr().out)["renewal_due"] is False

    def test_missing_certificate_exits_1(self, config_file, capsys):
        assert _exit_code(["-c", str(config_file), "status"]) == 1
        assert "Could not read certificate" in capsys.readouterr().err


class TestHook:
    def test_auth_reads_certbot_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("CERTBOT_DOMAIN", "example.com")
        monkeypatch.setenv("CERTBOT_VALIDATION", "tok-123")
        with patch("eabcert.acme.challenge.DnsChallengeHook") as hook_cls:
            main(["-c", str(config_file), "hook", "auth"])

        hook_cls.return_value.auth.assert_called_once_with("example.com", "tok-123")

    def test_cleanup(self, config_file, monkeypatch):
        monkeypatch.setenv("CERTBOT_DOMAIN", "example.com")
        with patch("eabcert.acme.challenge.DnsChallengeHook") as hook_cls:
            main(["-c", str(config_file), "hook", "cleanup"])

        hook_cls.return_value.cleanup.assert_called_once_with("example.com")

    def test_missing_environment(self, config_file, monkeypatch, capsys):
        monkeypatch.delenv("CERTBOT_DOMAIN", raising=False)
        monkeypatch.delenv("CERTBOT_VALIDATION", raising=False)

        assert _exit_code(["-c", str(config_file), "hook", "auth"]) == 1
        assert "CERTBOT_DOMAIN is not set" in capsys.readouterr().err

    def test_no_hook_subcommand(self, config_file):
        assert _exit_code(["-c", str(config_file), "hook"]) == 1


def test_module_entry_point_exists():
    main_module = Path(__file__).resolve().parents[2] / "src" / "eabcert" / "__main__.py"
    assert "main()" in main_module.read_text(encoding="utf-8")
