from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    app_env: str = "development"
    port: int = 3000
    api_version: str = "1.0.0"
    log_level: str = "INFO"

    # Mongo
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "expense_tracker"
    mongodb_timeout_ms: int = 5000

    # User auth
    jwt_secret: str = "change-me"
    jwt_expires_days: int = 7

    # Admin panel auth
    admin_email: str | None = None
    admin_password: str | None = None
    admin_jwt_secret: str | None = None
    admin_token_hours: int = 24

    # Admin sessions (timeout is in milliseconds)
    session_secret: str = "change-me-too"
    session_timeout: int = 24 * 60 * 60 * 1000
    session_cleanup_minutes: int = 60

    # CORS, comma separated; empty means the local dev origins
    allowed_origins: str = ""

    # Uploads
    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024

    # Password reset mail
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from: str = "noreply@expensetracker.local"
    frontend_url: str = "http://localhost:3000"

    # IMPORTANT: ignore extra keys in .env to avoid crashes
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def admin_secret(self) -> str:
        return self.admin_jwt_secret or self.jwt_secret

    @property
    def cors_origins(self) -> list[str]:
        if self.allowed_origins:
            return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]

settings = Settings()
