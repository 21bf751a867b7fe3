from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "postgresql+psycopg://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"

    jwt_secret: str = "dev-secret-change-me"
    jwt_issuer: str = "secure-task-api"
    jwt_audience: str = "secure-task-api"
    jwt_expires_minutes: int = 60 * 24

    cors_origins: list[str] = [
        "http://localhost:4200",
        "http://localhost:3000",
        "http://localhost:3001",
    ]

    # rate limiting (redis)
    rate_limit_enabled: bool = True
    rate_limit_auth_login_per_min: int = 30
    rate_limit_auth_register_per_min: int = 10

settings = Settings()
