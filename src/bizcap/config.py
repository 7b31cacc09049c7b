"""Application configuration.

Loads settings from .env file with BIZCAP_ prefix.
Validates the seed success rate is a probability.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Bizcap application settings.

    All settings are loaded from environment variables with BIZCAP_ prefix,
    or from a .env file in the working directory.
    """

    database_url: str = "sqlite:///data/bizcap.db"
    scheduler_db_url: str = "sqlite:///data/scheduler.db"
    debug: bool = False
    pattern_refresh_interval_hours: int = 24
    default_success_rate: float = 0.8
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {
        "env_file": ".env",
        "env_prefix": "BIZCAP_",
    }

    @model_validator(mode="after")
    def validate_success_rate(self) -> "Settings":
        """Reject seed success rates outside [0, 1]."""
        if not 0.0 <= self.default_success_rate <= 1.0:
            raise ValueError(
                "default_success_rate must be between 0 and 1, "
                f"got {self.default_success_rate}"
            )
        return self


def get_settings() -> Settings:
    """Create and return a Settings instance.

    Raises a clear error message if the environment holds invalid values.
    """
    try:
        return Settings()
    except Exception as e:
        raise RuntimeError(
            f"Failed to load Bizcap settings: {e}\n"
            "Check BIZCAP_* environment variables and the .env file."
        ) from e
