from __future__ import annotations

from pathlib import Path

import pytest

from history_recon.config import (
    ReconConfig,
    generate_default_config,
    get_default_config,
    load_config,
)
from history_recon.utils.exceptions import ConfigurationError


def test_load_config_defaults() -> None:
    cfg = load_config()
    assert isinstance(cfg, ReconConfig)
    assert cfg.matching.main_types == ["dedicated_account", "payout"]
    assert cfg.matching.fee_types == ["internalfees", "charges"]
    assert cfg.matching.amount_tolerance == 0.01
    assert cfg.matching.max_results == 10
    assert cfg.source.fetch_limit == 50
    assert cfg.display.currency == "NGN"
    assert cfg.config_file_path is None


def test_missing_file_falls_back_to_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "absent.yaml")
    assert cfg.matching.max_results == 10


def test_load_config_from_yaml(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(
        """
matching:
  fee_types: [internalfees]
  max_results: 5
display:
  currency: USD
""",
        encoding="utf-8",
    )

    cfg = load_config(cfg_file)

    assert cfg.matching.fee_types == ["internalfees"]
    assert cfg.matching.max_results == 5
    # untouched keys keep their defaults
    assert cfg.matching.main_types == ["dedicated_account", "payout"]
    assert cfg.display.currency == "USD"
    assert cfg.config_file_path == str(cfg_file)


def test_invalid_value_raises_configuration_error(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("matching:\n  amount_rule: fuzzy\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(cfg_file)


def test_non_mapping_yaml_raises_configuration_error(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(cfg_file)


def test_generated_config_loads_back(tmp_path: Path) -> None:
    output = tmp_path / "nested" / "config.yaml"
    generate_default_config(output)

    assert output.read_text().startswith("# Transaction history")
    cfg = load_config(output)
    assert cfg.model_dump(exclude={"config_file_path"}) == ReconConfig(
        **get_default_config()
    ).model_dump(exclude={"config_file_path"})
