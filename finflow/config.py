from pydantic import field_validator
from pydantic_settings import BaseSettings

# Named analytics windows and the calendar months each one spans.
WINDOW_MONTHS: dict[str, int] = {
    "1month": 1,
    "3months": 3,
    "6months": 6,
    "12months": 12,
}


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    telegram_bot_token: str

    db_path: str = "finflow.db"
    currency_symbol: str = "$"
    default_window: str = "6months"
    debug: bool = False
    health_check_port: int = 8080

    @field_validator("default_window", mode="before")
    @classmethod
    def check_default_window(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
        if v not in WINDOW_MONTHS:
            raise ValueError(f"default_window must be one of {', '.join(WINDOW_MONTHS)}")
        return v


settings = Settings()
