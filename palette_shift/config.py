from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    max_concurrent_requests: int = Field(default=2, alias="MAX_CONCURRENT_REQUESTS")
    max_image_size: int = Field(default=10 * 1024 * 1024, alias="MAX_IMAGE_SIZE")
    max_palette_colors: int = Field(default=256, ge=1, alias="MAX_PALETTE_COLORS")
    default_palette: str = Field(default="nord", alias="DEFAULT_PALETTE")
    default_blend_percent: int = Field(default=70, ge=0, le=100, alias="DEFAULT_BLEND_PERCENT")
    # 0 = one worker thread per CPU
    shift_workers: int = Field(default=0, ge=0, alias="SHIFT_WORKERS")

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}


settings = Settings()
