from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    database_url: str = "sqlite:///./roundcaddy_range.db"
    aws_access_key_id: str = "placeholder"
    aws_secret_access_key: str = "placeholder"
    aws_region: str = "us-east-1"
    s3_bucket_name: str = "placeholder-bucket"
    environment: str = "development"

    # Bearer token verification
    auth_secret_key: str = "development-secret-key-change-in-production"
    auth_algorithm: str = "HS256"
    allow_unverified_tokens: bool = False

    # Range mode
    default_target_tempo: float = 3.0
    watch_buffer_size: int = 1000
    watch_buffer_trim: int = 100
    swing_milestones: str = "100,500,1000"
    cors_origins: Optional[str] = None

    class Config:
        env_file = ".env"

    @property
    def milestone_counts(self) -> list:
        return sorted(int(m) for m in self.swing_milestones.split(",") if m.strip())


settings = Settings()
