"""
Tests for domain models — directives, receipts, outcomes, reports.
"""

import pytest
from pydantic import ValidationError

from converge.core.models import (
    Arch,
    ConvergenceReport,
    DirectiveState,
    InstallDirective,
    Outcome,
    OutcomeRecord,
    Receipt,
    ResolvedArtifact,
)


def _directive(name: str = "fzf") -> InstallDirective:
    return InstallDirective(
        category="brew", name=name, method="install", payload=name, target_path="/x",
    )


class TestInstallDirective:
    def test_frozen(self):
        d = _directive()
        with pytest.raises(ValidationError):
            d.name = "other"

    def test_serialize(self):
        assert _directive().serialize() == "brew=fzf::install::fzf::/x"

    def test_label_and_manual(self):
        d = InstallDirective(
            category="custom", name="Snitch", method="manual", payload="https://x", target_path="/y",
        )
        assert d.label == "Snitch (custom/manual)"
        assert d.is_manual
        assert d.location == ""


class TestReceipt:
    def test_success(self):
        r = Receipt.success(installer="brew", directive="fzf", output="done")
        assert r.ok
        assert not r.failed
        assert r.error is None

    def test_failure_default_kind(self):
        r = Receipt.failure(installer="brew", directive="fzf", error="boom")
        assert r.failed
        assert r.error_kind == "install_failed"

    def test_skip(self):
        r = Receipt.skip(installer="brew", directive="fzf", reason="dry")
        assert r.status == "skipped"
        assert r.output == "dry"


class TestArtifact:
    def test_describe(self):
        assert ResolvedArtifact(url="https://x/a.dmg").describe() == "https://x/a.dmg"
        assert ResolvedArtifact(identifier="123").describe() == "App Store ID 123"
        assert ResolvedArtifact().describe() == "(nothing)"

    def test_arch_values(self):
        assert Arch("arm64") is Arch.ARM64
        assert Arch.UNIVERSAL.value == "universal"


class TestOutcomes:
    def test_terminal_states(self):
        assert DirectiveState.INSTALLED.terminal
        assert DirectiveState.ALREADY_PRESENT.terminal
        assert not DirectiveState.RESOLVED.terminal
        assert not DirectiveState.PENDING.terminal

    def test_report_counters(self):
        report = ConvergenceReport(records=[
            OutcomeRecord(directive=_directive("a"), outcome=Outcome.INSTALLED),
            OutcomeRecord(directive=_directive("b"), outcome=Outcome.ALREADY_PRESENT),
            OutcomeRecord(directive=_directive("c"), outcome=Outcome.FAILED, error="x"),
            OutcomeRecord(directive=_directive("d"), outcome=Outcome.SKIPPED_MANUAL),
        ])
        assert report.total == 4
        assert report.installed == 1
        assert report.present == 1
        assert report.failed == 1
        assert report.skipped == 1
        assert report.status == "partial"

    def test_report_status(self):
        assert ConvergenceReport().status == "ok"
        failed_only = ConvergenceReport(records=[
            OutcomeRecord(directive=_directive(), outcome=Outcome.FAILED),
        ])
        assert failed_only.status == "failed"

    def test_to_dict(self):
        report = ConvergenceReport(mode="plan", elevation_needed=True, records=[
            OutcomeRecord(
                directive=_directive(),
                outcome=Outcome.WOULD_INSTALL,
                artifact=ResolvedArtifact(url="https://x/fzf.dmg"),
            ),
        ])
        data = report.to_dict()
        assert data["mode"] == "plan"
        assert data["would_install"] == 1
        assert data["elevation_needed"] is True
        assert data["records"][0]["outcome"] == "would-install"
        assert data["records"][0]["artifact"] == "https://x/fzf.dmg"
