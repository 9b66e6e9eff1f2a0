"""Application settings loaded from the environment."""

import os

from functools import lru_cache
from typing import Annotated, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    """Runtime configuration for the dispatch service.

    Gmail relay credentials are intentionally absent: they only ever arrive
    through the `/api/setup-gmail` endpoint or inline on a send request.
    """

    port: Annotated[int, Field(default=5000)]
    allowed_origins: Annotated[List[str], Field(default_factory=lambda: ["http://localhost:3000"])]

    groq_api_key: Annotated[Optional[str], Field(default=None)]
    groq_model: Annotated[str, Field(default="llama3-70b-8192")]
    groq_base_url: Annotated[str, Field(default="https://api.groq.com/openai/v1")]
    completion_temperature: Annotated[float, Field(default=0.7)]
    completion_max_tokens: Annotated[int, Field(default=1000)]

    smtp_host: Annotated[str, Field(default="smtp.gmail.com")]
    smtp_port: Annotated[int, Field(default=465)]
    smtp_timeout: Annotated[float, Field(default=30.0)]

    rate_limit_max_requests: Annotated[int, Field(default=100)]
    rate_limit_window_seconds: Annotated[int, Field(default=15 * 60)]

    max_body_bytes: Annotated[int, Field(default=10 * 1024 * 1024)]
    scheduled_retention_seconds: Annotated[float, Field(default=60 * 60)]

    logfire_token: Annotated[Optional[str], Field(default=None)]


def _split_origins(value: Optional[str]) -> List[str]:
    if not value:
        return ["http://localhost:3000"]
    return [origin.strip().rstrip("/") for origin in value.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Build the settings object from environment variables (cached)."""
    return Settings(
        port=int(os.getenv("PORT", "5000")),
        allowed_origins=_split_origins(os.getenv("CLIENT_URL")),
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        groq_model=os.getenv("GROQ_MODEL", "llama3-70b-8192"),
        groq_base_url=os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1"),
        smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
        smtp_port=int(os.getenv("SMTP_PORT", "465")),
        smtp_timeout=float(os.getenv("SMTP_TIMEOUT", "30")),
        rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100")),
        rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60))),
        max_body_bytes=int(os.getenv("MAX_BODY_BYTES", str(10 * 1024 * 1024))),
        scheduled_retention_seconds=float(os.getenv("SCHEDULED_RETENTION_SECONDS", str(60 * 60))),
        logfire_token=os.getenv("LOGFIRE_WRITE_TOKEN") or None,
    )
