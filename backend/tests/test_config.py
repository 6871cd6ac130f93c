"""Tests for environment configuration and the optional tracer."""

from expense_import.config import get_settings
from expense_import.tracing import ImportTracer


def test_default_settings(monkeypatch):
    for name in (
        "EXPENSE_API_BASE_URL",
        "EXPENSE_IMPORT_CURRENCY",
        "EXPENSE_IMPORT_TIMEOUT",
        "EXPENSE_IMPORT_CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.api_base_url == "http://localhost:5000/api"
    assert settings.currency == "INR"
    assert settings.timeout == 10.0
    assert settings.cors_origins == ["http://localhost:13030"]


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("EXPENSE_API_BASE_URL", "http://expenses:8080/api")
    monkeypatch.setenv("EXPENSE_IMPORT_CURRENCY", "USD")
    monkeypatch.setenv("EXPENSE_IMPORT_TIMEOUT", "2.5")
    monkeypatch.setenv("EXPENSE_IMPORT_CORS_ORIGINS", "http://a.test, http://b.test,")

    settings = get_settings()

    assert settings.api_base_url == "http://expenses:8080/api"
    assert settings.currency == "USD"
    assert settings.timeout == 2.5
    assert settings.cors_origins == ["http://a.test", "http://b.test"]


def test_tracer_disabled_without_keys(monkeypatch):
    monkeypatch.delenv("LANGFUSE_PUBLIC_KEY", raising=False)

    tracer = ImportTracer()

    assert tracer.is_enabled() is False
    trace = tracer.create_trace("import_commit", metadata={"count": 2})
    assert trace is None
    # Disabled tracing is a silent no-op
    tracer.add_span(trace, "create_batch", output_text="ok")
    tracer.end_trace(trace)
