from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _flag(name: str, default: str) -> bool:
    return (os.getenv(name) or default).strip().lower() in ("1", "true", "yes")


def _csv(name: str, default: str) -> List[str]:
    raw = (os.getenv(name) or default).strip()
    return [x.strip() for x in raw.split(",") if x.strip()]


@dataclass(frozen=True)
class Settings:
    env: str = "dev"
    log_level: str = "INFO"
    jwt_algorithms: List[str] = field(default_factory=lambda: ["HS256"])
    jwt_leeway_seconds: int = 30
    dynamodb_region: Optional[str] = None
    dynamodb_endpoint: Optional[str] = None
    security_headers_enabled: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def load_settings() -> Settings:
    env = (os.getenv("DYNAROUTER_ENV") or "dev").strip().lower()
    return Settings(
        env=env,
        log_level=(os.getenv("DYNAROUTER_LOG_LEVEL") or "INFO").strip().upper(),
        jwt_algorithms=_csv("DYNAROUTER_JWT_ALGORITHMS", "HS256"),
        jwt_leeway_seconds=int((os.getenv("DYNAROUTER_JWT_LEEWAY_SECONDS") or "30").strip() or "30"),
        dynamodb_region=(os.getenv("DYNAROUTER_DYNAMODB_REGION") or "").strip() or None,
        dynamodb_endpoint=(os.getenv("DYNAROUTER_DYNAMODB_ENDPOINT") or "").strip() or None,
        security_headers_enabled=_flag(
            "DYNAROUTER_SECURITY_HEADERS_ENABLED", "true" if env == "prod" else "false"
        ),
        cors_origins=_csv("DYNAROUTER_CORS_ORIGINS", "*"),
    )
