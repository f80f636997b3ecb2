"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PUBLIC_BASE_URL = "https://info-total-pe.fly.dev"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Upstream lookup API
    upstream_base_url: str = Field(
        default="https://web-production-75681.up.railway.app/seeker",
        alias="UPSTREAM_BASE_URL",
    )

    # GitHub content store
    github_token: Optional[str] = Field(default=None, alias="GITHUB_TOKEN")
    github_repo: Optional[str] = Field(default=None, alias="GITHUB_REPO")  # "owner/repo"
    github_branch: str = Field(default="main", alias="GITHUB_BRANCH")
    github_folder: str = Field(default="public", alias="GITHUB_FOLDER")

    # Public base URL used to build proxy download links
    public_base_url: str = Field(default=DEFAULT_PUBLIC_BASE_URL, alias="API_BASE_URL")

    # Card assets
    app_icon_url: str = Field(
        default="https://www.socialcreator.com/srv/imgs/gen/79554_icohome.png",
        alias="APP_ICON_URL",
    )
    app_qr_url: str = Field(
        default="https://www.socialcreator.com/consultapeapk#apps",
        alias="APP_QR_URL",
    )
    assets_dir: Path = Field(default=Path("assets"), alias="ASSETS_DIR")

    # Outbound HTTP
    http_timeout_seconds: float = Field(default=20.0, alias="HTTP_TIMEOUT_SECONDS")

    # Chat-bot response metadata
    bot_name: str = Field(default="Consulta pe", alias="BOT_NAME")
    bot_chat_id: int = Field(default=7658983973, alias="BOT_CHAT_ID")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def fonts_dir(self) -> Path:
        """Path to the fonts directory."""
        return self.assets_dir / "fonts"

    @property
    def store_configured(self) -> bool:
        return bool(self.github_token and self.github_repo)

    def startup_warnings(self) -> list[str]:
        """Messages about missing or fallback configuration, logged at startup."""
        warnings = []
        if not self.github_token:
            warnings.append("GITHUB_TOKEN no está configurado.")
        if not self.github_repo:
            warnings.append("GITHUB_REPO no está configurado.")
        if self.public_base_url == DEFAULT_PUBLIC_BASE_URL:
            warnings.append(
                f"API_BASE_URL no está configurada, se usa la URL de fallback: {DEFAULT_PUBLIC_BASE_URL}"
            )
        return warnings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build the process-wide settings once, at startup."""
    return Settings()
