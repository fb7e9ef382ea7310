import os

from pydantic import BaseModel


class Settings(BaseModel):
    APP_NAME: str = os.getenv("APP_NAME", "SAST Report Viewer")
    APP_VERSION: str = os.getenv("APP_VERSION", "0.1.0")

    # Upload boundary
    MAX_UPLOAD_MB: int = int(os.getenv("MAX_UPLOAD_MB", "50"))
    ALLOWED_EXTENSIONS: list[str] = [
        e.strip().lower() for e in os.getenv("ALLOWED_EXTENSIONS", ".json,.sarif").split(",") if e.strip()
    ]

    # Deduplication default used by the API and CLI
    DEDUP_SIMILARITY_THRESHOLD: float = float(os.getenv("DEDUP_SIMILARITY_THRESHOLD", "0.85"))

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024


settings = Settings()
