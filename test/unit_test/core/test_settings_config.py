"""Unit tests for ``Settings`` environment binding and grouped views."""

import os

import pytest

from gatekeeper_ai.core.config import ApprovalSettings, SandboxSettings, Settings


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    # Keep a developer's .env out of the picture
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("GATEKEEPER_AI_"):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettingsDefaults:
    def test_defaults(self, clean_env):
        s = Settings()

        assert s.log_level == "INFO"
        assert s.project_root == "."
        assert s.model is None
        assert s.max_refinements == 2
        assert s.database_url.startswith("sqlite+aiosqlite:///")

    def test_grouped_defaults(self, clean_env):
        s = Settings()

        assert s.sandbox == SandboxSettings()
        assert s.approval == ApprovalSettings()


class TestSettingsFromEnvironment:
    def test_aliases_bind_environment_variables(self, clean_env):
        clean_env.setenv("GATEKEEPER_AI_LOG_LEVEL", "DEBUG")
        clean_env.setenv("GATEKEEPER_AI_MODEL", "openai:gpt-4o")
        clean_env.setenv("GATEKEEPER_AI_MAX_REFINEMENTS", "0")
        clean_env.setenv("GATEKEEPER_AI_SANDBOX_ENABLED", "false")
        clean_env.setenv("GATEKEEPER_AI_SANDBOX_MAX_CPU_TIME", "5")
        clean_env.setenv("GATEKEEPER_AI_AUTO_APPROVE_MEDIUM_RISK", "true")

        s = Settings()

        assert s.log_level == "DEBUG"
        assert s.model == "openai:gpt-4o"
        assert s.max_refinements == 0
        assert s.sandbox.enabled is False
        assert s.sandbox.max_cpu_time_s == 5
        assert s.approval.auto_approve_medium_risk is True
        assert s.approval.confirm_high_risk is True

    def test_dotenv_file_is_read(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("GATEKEEPER_AI_PROJECT_ROOT=/srv/app\n")

        assert Settings().project_root == "/srv/app"

    def test_field_names_accepted_in_code(self, clean_env):
        s = Settings(project_root="/work", confirm_high_risk=False)

        assert s.project_root == "/work"
        assert s.approval.confirm_high_risk is False
