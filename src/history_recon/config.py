"""Configuration loader and validation for history reconciliation settings."""

from pathlib import Path
from typing import Any, Literal, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class InputConfig(BaseModel):
    """Configuration for history file parsing."""

    encoding: str = "utf-8"
    delimiter: str = ","


class MatchingConfig(BaseModel):
    """Classification and fee matching policy."""

    type_fields: list[str] = Field(
        default_factory=lambda: ["type", "transactionType", "transaction_type"]
    )
    main_types: list[str] = Field(default_factory=lambda: ["dedicated_account", "payout"])
    fee_types: list[str] = Field(default_factory=lambda: ["internalfees", "charges"])
    amount_rule: Literal["tolerance", "ignore"] = "tolerance"
    amount_tolerance: float = Field(default=0.01, gt=0)
    max_results: int = Field(default=10, ge=0)


class SourceConfig(BaseModel):
    """Remote history endpoint settings."""

    history_url: str = "https://techvibs.com/bank/api_general/access_history_general_local_api.php"
    timeout_seconds: float = Field(default=30.0, gt=0)
    fetch_limit: int = Field(default=50, ge=1)


class DisplayConfig(BaseModel):
    """Rendering defaults."""

    currency: str = "NGN"


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "history_report_{date}_{time}.xlsx"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    transactions: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Transactions")
    )
    fees: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Associated Fees"))
    unmatched_fees: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Fees")
    )
    dropped: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Dropped Records"))


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "encoding": "utf-8",
            "delimiter": ",",
        },
        "matching": {
            "type_fields": ["type", "transactionType", "transaction_type"],
            "main_types": ["dedicated_account", "payout"],
            "fee_types": ["internalfees", "charges"],
            "amount_rule": "tolerance",
            "amount_tolerance": 0.01,
            "max_results": 10,
        },
        "source": {
            "history_url": (
                "https://techvibs.com/bank/api_general/access_history_general_local_api.php"
            ),
            "timeout_seconds": 30.0,
            "fetch_limit": 50,
        },
        "display": {
            "currency": "NGN",
        },
        "output": {
            "excel": {
                "filename_template": "history_report_{date}_{time}.xlsx",
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "transactions": {"enabled": True, "name": "Transactions"},
                "fees": {"enabled": True, "name": "Associated Fees"},
                "unmatched_fees": {"enabled": True, "name": "Unmatched Fees"},
                "dropped": {"enabled": True, "name": "Dropped Records"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file cannot be read or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read configuration {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration {config_path} must contain a mapping at the top level"
            )

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    yaml_content = """# Transaction history reconciliation configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(get_default_config(), default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
