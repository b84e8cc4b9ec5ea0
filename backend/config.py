"""
Runtime configuration.
Reads the environment (and a local .env file) once at startup.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from dotenv import load_dotenv


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """
    Deployment settings shared by every blueprint.

    Token secret and lifetime are fixed per deployment, never per call.
    """

    database_url: str
    jwt_secret: str
    port: int = 3000
    token_lifetime: int = 3600  # seconds
    password_hash_rounds: int = 1
    environment: str = "development"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    db_min_connections: int = 1
    db_max_connections: int = 10

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            RuntimeError: If DATABASE_URL or JWT_SECRET is missing.
        """
        load_dotenv()

        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")

        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            raise RuntimeError("JWT_SECRET is missing. Set it in .env")

        return cls(
            database_url=database_url,
            jwt_secret=jwt_secret,
            port=int(os.getenv("PORT", 3000)),
            token_lifetime=int(os.getenv("TOKEN_LIFETIME", 3600)),
            password_hash_rounds=int(os.getenv("PASSWORD_HASH_ROUNDS", 1)),
            environment=os.getenv("APP_ENV", "development"),
            cors_origins=_split(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            db_min_connections=int(os.getenv("DB_MIN_CONNECTIONS", 1)),
            db_max_connections=int(os.getenv("DB_MAX_CONNECTIONS", 10)),
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def to_flask_config(self) -> Dict[str, Any]:
        """Keys read by the blueprints through `current_app.config`."""
        return {
            "JWT_SECRET": self.jwt_secret,
            "TOKEN_LIFETIME": self.token_lifetime,
            "PASSWORD_HASH_ROUNDS": self.password_hash_rounds,
            "APP_ENV": self.environment,
        }
