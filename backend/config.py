"""Application configuration settings."""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

# Calculate project root directory (backend's parent directory)
_BACKEND_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _BACKEND_DIR.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Plugin Registry API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Plugin namespace: every npm package starting with this prefix is a plugin
    plugin_prefix: str = "gitbook-plugin-"

    # Host engine. Plugins declare support in package.json as
    # "engines": {"<engine_name>": "<npm range>"}
    engine_name: str = "gitbook"
    engine_version: str = "3.2.3"

    # npm binary used for registry queries and installs
    npm_executable: str = "npm"

    # Directory holding the bundled default plugins (under its node_modules/)
    defaults_dir: str = str(_PROJECT_ROOT)

    # Maximum node_modules nesting walked when listing installed plugins
    scan_depth: int = 4

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
