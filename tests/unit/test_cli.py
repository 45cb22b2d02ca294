"""Tests for the clearance CLI."""

import textwrap
import uuid

from typer.testing import CliRunner

from clearance.cli import app

runner = CliRunner()


def _write_policy(tmp_path) -> str:
    module_name = f"bank_policy_{uuid.uuid4().hex}"
    (tmp_path / f"{module_name}.py").write_text(
        textwrap.dedent(
            """
            def resolve(refs):
                return [{"id": ref, "country": "LT"} for ref in refs]

            def broken(subject):
                raise RuntimeError("broken rule")

            POLICY = {
                "account": {
                    "resolve_refs": resolve,
                    "operations": {
                        "open": lambda subject: subject.get("role") == "teller",
                        "read": lambda subject, account: account["country"] == "LT",
                        "close": broken,
                    },
                },
            }
            """
        )
    )
    return module_name


def test_show_lists_operations(tmp_path):
    module_name = _write_policy(tmp_path)

    result = runner.invoke(app, ["show", f"{module_name}:POLICY", "--path", str(tmp_path)])
    assert result.exit_code == 0, result.stdout
    assert "open" in result.stdout
    assert "account" in result.stdout
    assert "resolver" in result.stdout


def test_check_authorized_and_denied(tmp_path):
    module_name = _write_policy(tmp_path)
    base = ["check", module_name, "open", "account", "--path", str(tmp_path)]

    result = runner.invoke(app, base + ["--subject", '{"role": "teller"}'])
    assert result.exit_code == 0, result.stdout
    assert "authorized" in result.stdout

    result = runner.invoke(app, base + ["--subject", '{"role": "manager"}'])
    assert result.exit_code == 1
    assert "denied" in result.stdout


def test_check_with_ref(tmp_path):
    module_name = _write_policy(tmp_path)

    result = runner.invoke(
        app, ["check", module_name, "read", "account", "--ref", "7", "--path", str(tmp_path)]
    )
    assert result.exit_code == 0, result.stdout


def test_check_reports_faults(tmp_path):
    module_name = _write_policy(tmp_path)

    result = runner.invoke(
        app, ["check", module_name, "close", "account", "--path", str(tmp_path)]
    )
    assert result.exit_code == 2
    assert "account/close: rule failed with error: broken rule" in result.stdout

    result = runner.invoke(
        app, ["check", module_name, "approve", "loan", "--path", str(tmp_path)]
    )
    assert result.exit_code == 2
    assert "unknown operation" in result.stdout
