from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GATED_FSM_",
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Machine Defaults
    default_machine_name: str = Field(
        default="machine",
        description="Name given to machines constructed without one",
    )
    strict_state_names: bool = Field(
        default=False,
        description="Reject duplicate state names instead of letting the first registration win",
    )

    @property
    def is_debug(self) -> bool:
        return self.log_level.upper() == "DEBUG"


# Global settings instance
settings = Settings()
