from tastybites import __main__ as entrypoint
from tastybites.core.config import get_settings


def test_main_serves_configured_host_and_port(monkeypatch):
    calls = []
    monkeypatch.setattr(
        entrypoint, "uvicorn",
        type("U", (), {"run": staticmethod(lambda *args, **kwargs: calls.append((args, kwargs)))}),
    )

    entrypoint.main()

    settings = get_settings()
    (args, kwargs), = calls
    assert args == ("tastybites.main:app",)
    assert kwargs["host"] == settings.api_host
    assert kwargs["port"] == settings.api_port
    assert kwargs["reload"] is False
