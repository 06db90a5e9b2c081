from __future__ import annotations

import pytest
from pydantic import ValidationError

from support_agent.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # Keep a developer's .env and shell exports out of these tests
    monkeypatch.chdir(tmp_path)
    for name in ("AGENT_MAX_STEPS", "PORT", "CORS_ALLOW_ORIGINS", "AGENT_TOOL_SEED", "AGENT_REASONER", "TOGETHERAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings()

    assert settings.max_steps == 10
    assert settings.port == 8000
    assert settings.tool_seed is None
    assert settings.cors_allow_origins == ["*"]
    assert settings.use_chat_model() is False


def test_environment_is_read_when_settings_are_built(monkeypatch) -> None:
    monkeypatch.setenv("AGENT_MAX_STEPS", "3")
    monkeypatch.setenv("AGENT_TOOL_SEED", "42")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("TOGETHERAI_API_KEY", "key")

    settings = Settings()

    assert settings.max_steps == 3
    assert settings.tool_seed == 42
    assert settings.cors_allow_origins == ["http://a.test", "http://b.test"]
    assert settings.use_chat_model() is True


def test_dotenv_file_is_read(tmp_path) -> None:
    (tmp_path / ".env").write_text("AGENT_MAX_STEPS=5\nAGENT_REASONER=rules\n")

    settings = Settings()

    assert settings.max_steps == 5
    assert settings.reasoner == "rules"


def test_keyword_arguments_override_environment(monkeypatch) -> None:
    monkeypatch.setenv("AGENT_MAX_STEPS", "3")

    assert Settings(max_steps=7).max_steps == 7


@pytest.mark.parametrize(
    ("name", "value"),
    [("PORT", "not-a-port"), ("PORT", "70000"), ("AGENT_MAX_STEPS", "0"), ("AGENT_REASONER", "magic")],
)
def test_bad_values_raise_validation_errors(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings()
