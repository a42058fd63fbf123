"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Bearable coaching server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Defaults to loopback: care plans and caregiver alerts are personal data
    # and the server has no auth layer.
    bearable_host: str = "127.0.0.1"
    bearable_port: int = 8001
    bearable_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    bearable_allow_insecure_bind: bool = False

    # Catalog
    # Directory holding phases.yaml, goal_templates.yaml and nudge_templates.yaml.
    # Empty means the catalog bundled with the package.
    catalog_dir: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
