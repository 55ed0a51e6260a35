from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================
    environment: str = "dev"  # "dev", "prod"
    debug: bool = True
    api_docs_enabled: bool = True

    # ==========================================================================
    # DATABASE
    # ==========================================================================
    database_url: str = "sqlite:///./jobguard.db"

    # ==========================================================================
    # SESSION TOKENS (JWT)
    # ==========================================================================
    jwt_secret: str = "change-this-secret-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 30  # 30 days
    cookie_name: str = "token"
    cookie_expire_days: int = 30

    # ==========================================================================
    # ACCOUNT SECURITY
    # ==========================================================================
    max_login_attempts: int = 5
    lock_duration_minutes: int = 120  # 2 hours
    password_hash_rounds: int = 29000  # pbkdf2_sha256 work factor
    reset_token_expire_minutes: int = 10

    # ==========================================================================
    # RATE LIMITING (requests, window in seconds)
    # ==========================================================================
    rate_limit_requests: int = 100
    rate_limit_window: int = 15 * 60
    rate_limit_auth_requests: int = 5
    rate_limit_auth_window: int = 15 * 60
    rate_limit_scan_requests: int = 20
    rate_limit_scan_window: int = 60 * 60
    rate_limit_upload_requests: int = 10
    rate_limit_upload_window: int = 60 * 60
    rate_limit_reset_requests: int = 3
    rate_limit_reset_window: int = 60 * 60

    # ==========================================================================
    # FILE UPLOADS
    # ==========================================================================
    upload_dir: str = "./uploads"
    max_file_size: int = 5 * 1024 * 1024  # 5MB

    # ==========================================================================
    # EMAIL (SMTP)
    # ==========================================================================
    smtp_host: str = ""  # Empty = log emails instead of sending
    smtp_port: int = 587
    smtp_email: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    from_name: str = "JobGuard"

    # ==========================================================================
    # GOOGLE OAUTH
    # ==========================================================================
    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = "http://localhost:8000/api/v1/auth/google/callback"

    # ==========================================================================
    # FRONTEND / CORS
    # ==========================================================================
    client_url: str = "http://localhost:3000"
    cors_origins: str = ""  # Comma-separated origins; empty = client_url only

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "prod"

    @property
    def cors_origins_list(self) -> List[str]:
        if not self.cors_origins:
            return [self.client_url]
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def google_oauth_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)


settings = Settings()
