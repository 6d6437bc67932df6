"""Tests for the click commands."""

from click.testing import CliRunner

from letter_to_you.cli import cli
from letter_to_you.services import resend_email_service


def test_modes_lists_catalog():
    result = CliRunner().invoke(cli, ["modes"])

    assert result.exit_code == 0
    assert "quick" in result.output
    assert "(free)" in result.output
    assert "Career & Meaning" in result.output


def test_send_scheduled_emails_with_nothing_due(db):
    result = CliRunner().invoke(cli, ["send-scheduled-emails"])

    assert result.exit_code == 0
    assert "No emails to send" in result.output


def test_send_scheduled_emails_unconfigured(db, monkeypatch):
    monkeypatch.setattr(resend_email_service.settings, "RESEND_API_KEY", "")

    result = CliRunner().invoke(cli, ["send-scheduled-emails"])

    assert result.exit_code == 1
    assert "Email delivery not configured" in result.output
