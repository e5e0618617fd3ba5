from __future__ import annotations

from pathlib import Path

import pytest

from tsb_etl.config.loader import ConfigError, load_config
from tsb_etl.excel.fields import BRANCH_CODES, DEFAULT_CLAIM_COLUMN_OFFSETS


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.source_directory == "./data"
    assert cfg.combined_output == "./output/combined_data.xlsx"
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.database.dsn is None
    assert cfg.extraction.branch_codes == ("701", "715", "760")
    assert cfg.extraction.company_type == "HD"
    assert cfg.extraction.header_anchor == "Şirket Adı"
    assert cfg.extraction.header_scan_limit == 30
    assert cfg.extraction.claim_column_offsets == DEFAULT_CLAIM_COLUMN_OFFSETS


def test_load_config_minimal_uses_defaults(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("source_directory: ./data\ndatabase: {}\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.combined_output is None
    assert cfg.extraction.branch_codes == BRANCH_CODES
    assert cfg.database.user is None


def test_load_config_integer_branch_codes_and_partial_offsets(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text(
        "source_directory: ./data\n"
        "database: {}\n"
        "branch_codes: [715, 760]\n"
        "header_scan_limit: 40\n"
        "claim_column_offsets:\n"
        "  incurred_claims: 112\n",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.extraction.branch_codes == ("715", "760")
    assert cfg.extraction.header_scan_limit == 40
    assert cfg.extraction.claim_column_offsets["incurred_claims"] == 112
    assert cfg.extraction.claim_column_offsets["unreported_claims"] == 117


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_load_config_missing_required(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("source_directory: ./data\n", "")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_extra_field(write_config: Path):
    write_config.write_text(
        write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n", encoding="utf-8"
    )
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_load_config_unknown_offset_field(write_config: Path):
    write_config.write_text(
        write_config.read_text(encoding="utf-8") + "claim_column_offsets:\n  made_up: 3\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_load_config_invalid_yaml(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("source_directory: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(path)


def test_load_config_non_mapping_root(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)
