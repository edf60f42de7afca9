"""Basic smoke tests for configuration defaults."""

from support_agent.config import Settings, settings, validate_env


def test_settings_object_exists() -> None:
    """Ensure configuration object can be imported without crashing."""

    assert settings is not None


def test_defaults_match_documented_policy(monkeypatch) -> None:
    monkeypatch.delenv("TOP_K", raising=False)
    monkeypatch.delenv("UNKNOWN_INTENT_FALLBACK", raising=False)

    fresh = Settings(_env_file=None)

    assert fresh.top_k == 5
    assert fresh.unknown_intent_fallback == "faq"
    assert fresh.groq_classifier_temperature == 0.0


def test_validate_env_lists_missing_variables(monkeypatch) -> None:
    monkeypatch.delenv("SUPPORT_AGENT_TEST_VAR", raising=False)

    try:
        validate_env(["SUPPORT_AGENT_TEST_VAR"])
    except RuntimeError as exc:
        assert "SUPPORT_AGENT_TEST_VAR" in str(exc)
    else:
        raise AssertionError("validate_env should fail for a missing variable")
