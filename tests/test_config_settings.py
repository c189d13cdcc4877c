from gated_fsm.config import Settings


def test_defaults(monkeypatch):
    """Settings fall back to permissive defaults."""

    monkeypatch.delenv("GATED_FSM_STRICT_STATE_NAMES", raising=False)
    monkeypatch.delenv("GATED_FSM_LOG_LEVEL", raising=False)

    settings = Settings()

    assert settings.strict_state_names is False
    assert settings.log_level == "INFO"
    assert settings.is_debug is False


def test_env_prefix(monkeypatch):
    """Environment variables with the package prefix override defaults."""

    monkeypatch.setenv("GATED_FSM_STRICT_STATE_NAMES", "true")
    monkeypatch.setenv("GATED_FSM_DEFAULT_MACHINE_NAME", "Microwave")
    monkeypatch.setenv("GATED_FSM_LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.strict_state_names is True
    assert settings.default_machine_name == "Microwave"
    assert settings.is_debug is True


def test_unprefixed_env_ignored(monkeypatch):
    """Bare variable names do not leak into settings."""

    monkeypatch.delenv("GATED_FSM_LOG_LEVEL", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "ERROR")

    settings = Settings()

    assert settings.log_level == "INFO"
