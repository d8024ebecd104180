from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://vitatrack:vitatrack@db:5432/vitatrack"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # IANA zone used to decide what "today" is when the caller omits `day`.
    TIMEZONE: str = "UTC"

    # current_value is clamped to [0, target * CAP_MULTIPLIER]
    CAP_MULTIPLIER: int = 5

    # Largest accepted target; target * CAP_MULTIPLIER must fit Numeric(12, 2).
    MAX_TARGET_VALUE: int = 1_000_000

    # Fallback goals when the user's profile has nothing usable.
    DEFAULT_WATER_TARGET_ML: int = 2000
    DEFAULT_WEEKLY_EXERCISE_MINUTES: int = 150
    DEFAULT_CALORIE_TARGET: int = 2000

    # Fraction of the target that counts as a successful day in reports.
    WATER_SUCCESS_THRESHOLD: Decimal = Decimal("0.8")
    DEFAULT_SUCCESS_THRESHOLD: Decimal = Decimal("1.0")

    # Fraction of the target a day needs to extend an adherence streak.
    STREAK_MIN_ADHERENCE: Decimal = Decimal("0.8")

    DEFAULT_WINDOW_DAYS: int = 7
    MAX_WINDOW_DAYS: int = 90

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
