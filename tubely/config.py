from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./tubely.db"
    # Create tables on startup (dev/tests); production uses alembic
    auto_create_tables: bool = True

    # JWT
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 1 day

    # Local assets (thumbnails), served under /assets
    assets_root: str = "./assets"
    public_host: str = "localhost"
    port: str = "8091"

    # S3 / CloudFront for uploaded videos
    s3_bucket: str = "tubely-videos"
    s3_region: str = "us-east-1"
    s3_endpoint_url: str = ""  # empty = AWS default endpoint
    s3_cf_distribution: str = "https://example.cloudfront.net"

    # FFmpeg tools
    ffprobe_path: str = "ffprobe"
    ffmpeg_path: str = "ffmpeg"
    media_probe_timeout_seconds: int = 60
    media_process_timeout_seconds: int = 60 * 30

    class Config:
        env_file = ".env"


@lru_cache
def load_settings() -> Settings:
    return Settings()
