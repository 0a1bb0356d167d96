"""Smoke tests for application health and wiring."""

from forensics_client.config import Settings


def test_settings_defaults() -> None:
    """Settings default to the local analysis backend."""
    settings = Settings(_env_file=None)
    assert settings.api_base_url == "http://127.0.0.1:8000"
    assert settings.compare_faces_path == "/compare-faces"
    assert settings.default_threshold == 75.0
    assert settings.progress_step_delay == 0.0


def test_settings_env_override(monkeypatch) -> None:
    monkeypatch.setenv("FORENSICS_API_BASE_URL", "http://analysis:9000")
    monkeypatch.setenv("FORENSICS_ACCESS_TOKEN", "abc")
    settings = Settings(_env_file=None)
    assert settings.api_base_url == "http://analysis:9000"
    assert settings.access_token == "abc"


async def test_health_endpoint(app_client) -> None:
    """GET /health returns status ok."""
    response = await app_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
