from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_path: Path = Path.home() / "DigitalArchive"
    token_ttl_seconds: int = 8 * 60 * 60  # one working day
    max_upload_bytes: int = 25 * 1024 * 1024  # 25 MiB
    # Progress reported for a document that has not entered any review stage.
    progress_floor: int = 1
    admin_email: str = "admin@digital-archive.local"
    admin_password: str | None = None
    cors_origins: list[str] = [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def db_path(self) -> Path:
        return self.data_path / "archive.sqlite"

    @property
    def storage_dir(self) -> Path:
        return self.data_path / "documents"

    model_config = {"env_prefix": "ARCHIVE_"}


settings = Settings()
