"""Application configuration via environment variables."""
from pathlib import Path
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    app_name: str = "AnimFlow"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    asset_dir: Path = PROJECT_ROOT / "data" / "assets"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    max_scenes: int = 8
    max_animations_per_execution: int = 100_000
    batch_keys_soft_cap: int = 200
    duplicate_max_count: int = 50
    duplicate_max_total: int = 200

    model_config = {"env_prefix": "ANIMFLOW_"}


settings = Settings()
