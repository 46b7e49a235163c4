# Centralised application configuration
# (environment variables, constants, timeouts).

import os


class Settings:
    APP_NAME = os.getenv("APP_NAME", "Auth Gateway")
    JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key-change-in-production")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "authgate-local")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authgate-clients")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    TOKEN_TTL_SECONDS = int(os.getenv("TOKEN_TTL_SECONDS", "3600"))  # 1 hour

    # Session lifecycle
    INACTIVITY_TIMEOUT_MS = int(os.getenv("INACTIVITY_TIMEOUT_MS", str(15 * 60 * 1000)))  # 15 minutes
    CLEANUP_INTERVAL_MS = int(os.getenv("CLEANUP_INTERVAL_MS", str(5 * 60 * 1000)))  # 5 minutes

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8000"))

    @property
    def inactivity_timeout_seconds(self) -> float:
        return self.INACTIVITY_TIMEOUT_MS / 1000

    @property
    def cleanup_interval_seconds(self) -> float:
        return self.CLEANUP_INTERVAL_MS / 1000


settings = Settings()
