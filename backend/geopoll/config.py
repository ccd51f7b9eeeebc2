"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class PollsConfig(BaseModel):
    """Poll lifecycle and staking rules."""

    min_stake_octas: int = 1
    max_title_length: int = 200
    allow_early_finalize: bool = False  # Let creators finalize before expiry


class UnitsConfig(BaseModel):
    """Display units for the staking asset."""

    decimals: int = 8  # Octas per coin = 10**decimals
    symbol: str = "APT"


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")
    ledger_filename: str = "ledger.yaml"

    # API Keys
    logfire_token: str = ""

    # Nested configuration sections
    polls: PollsConfig = Field(default_factory=PollsConfig)
    units: UnitsConfig = Field(default_factory=UnitsConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GEOPOLL_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def ledger_path(self) -> Path:
        return self.data_dir / self.ledger_filename

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.debug(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m geopoll init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["polls", "units"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name]

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
