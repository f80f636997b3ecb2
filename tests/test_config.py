"""
Settings loading tests
"""

from pathlib import Path

from fichas.config import DEFAULT_PUBLIC_BASE_URL, Settings


class TestSettings:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
        monkeypatch.setenv("GITHUB_REPO", "acme/fichas")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("ASSETS_DIR", "/srv/assets")
        settings = Settings(_env_file=None)
        assert settings.github_token == "ghp_env"
        assert settings.port == 8080
        assert settings.fonts_dir == Path("/srv/assets/fonts")
        assert settings.store_configured

    def test_startup_warnings_for_missing_store(self, monkeypatch):
        for name in ("GITHUB_TOKEN", "GITHUB_REPO", "API_BASE_URL"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        warnings = settings.startup_warnings()
        assert not settings.store_configured
        assert any("GITHUB_TOKEN" in w for w in warnings)
        assert any("GITHUB_REPO" in w for w in warnings)
        assert any(DEFAULT_PUBLIC_BASE_URL in w for w in warnings)

    def test_no_warnings_when_configured(self, settings):
        assert settings.startup_warnings() == []
