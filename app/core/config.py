from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정 (.env 또는 환경변수)"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = "development"
    allowed_origins: str = "http://localhost:5173"

    # 기기 로컬 저장소 (SQLite)
    local_database_url: str = "sqlite+aiosqlite:///./quiz_room.db"

    # 공유 원격 저장소 (JSON 문서 저장소 REST 엔드포인트). 비어 있으면 로컬 저장소만 사용
    remote_store_url: str = ""
    remote_store_auth: str = ""
    remote_store_timeout: float = 5.0

    timer_tick_seconds: float = 1.0
    session_ttl_seconds: int = 3600

    public_base_url: str = "http://localhost:5173"
    log_dir: str = "logs"

    @property
    def allowed_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def remote_store_configured(self) -> bool:
        return bool(self.remote_store_url.strip())


settings = Settings()
