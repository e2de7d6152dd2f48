from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "points-engine"
    APP_VERSION: str = "1.0.0"

    SECRET_KEY: str = "dev-secret-key-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    DATABASE_URL: str = "sqlite:///points.db"
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    # Daily login streak sweep. Runs late in the (UTC) day so today's logins count.
    STREAK_SWEEP_ENABLED: bool = False
    STREAK_SWEEP_HOUR: int = 23
    STREAK_SWEEP_MINUTE: int = 55

    NOTIFICATIONS_ENABLED: bool = True


settings = Settings()
