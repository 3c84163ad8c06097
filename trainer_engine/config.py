"""Service settings, read from the environment and `.env`."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Server
    host: str = "0.0.0.0"
    port: int = 8002
    debug: bool = False

    # Engine executable, plus comma separated alternates tried in order
    engine_path: str = "stockfish"
    engine_fallback_paths: str = ""

    engine_init_timeout: float = 10.0
    engine_request_timeout: float = 30.0
    engine_quit_timeout: float = 1.0

    move_quality_depth: int = 15
    multipv_depth_reduction: int = 2

    @property
    def engine_fallback_list(self) -> list[str]:
        return [p.strip() for p in self.engine_fallback_paths.split(",") if p.strip()]


settings = Settings()
