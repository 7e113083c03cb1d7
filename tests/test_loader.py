"""Tests for YAML configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from line_twin import ConfigError, ConfigLoader, SimulationParams


def write_config(root: Path, defaults: dict | None, lines: dict) -> Path:
    """Write a config directory with optional defaults and named lines."""
    (root / "lines").mkdir(parents=True)
    if defaults is not None:
        (root / "defaults.yaml").write_text(yaml.safe_dump(defaults))
    for name, data in lines.items():
        (root / "lines" / f"{name}.yaml").write_text(yaml.safe_dump(data))
    return root


def station(sid: str, **kw) -> dict:
    return {"station_id": sid, "type": "WELDING", "cycle_time_sec": 2, **kw}


class TestShippedConfig:
    """The config directory shipped with the project resolves cleanly."""

    def test_body_shop_stations_in_order(self, loader: ConfigLoader):
        resolved = loader.resolve_line("body_shop")

        assert resolved.line.station_ids == ["ST01", "ST02", "ST03", "ST04", "ST05", "ST06"]
        types = [s.type for s in resolved.line.stations]
        assert types == ["WELDING", "ASSEMBLY", "PAINTING", "INSPECTION", "TESTING", "PACKAGING"]
        assert resolved.line.get_station("ST03").cycle_time_sec == 8
        assert resolved.line.get_station("ST06").operator == "OP-6"

    def test_body_shop_uses_defaults(self, loader: ConfigLoader):
        params = loader.resolve_line("body_shop").simulation

        assert params.update_interval_ms == 2000
        assert params.error_probability == pytest.approx(0.015)
        assert params.maintenance_probability == pytest.approx(0.01)
        assert params.recovery_time_ms == 20000
        assert params.cycle_time_variation == pytest.approx(0.2)
        assert params.report_every_ticks == 5

    def test_line_overrides_merge_over_defaults(self, loader: ConfigLoader):
        params = loader.resolve_line("two_station").simulation

        assert params.update_interval_ms == 1000
        assert params.error_probability == 0.0
        # Not overridden: inherited from defaults.yaml
        assert params.recovery_time_ms == 20000

    def test_storage_path_from_defaults(self, loader: ConfigLoader):
        assert loader.resolve_line("body_shop").db_path == "./line_twin.duckdb"

    def test_list_lines(self, loader: ConfigLoader):
        assert {"body_shop", "two_station"} <= set(loader.list_lines())


class TestValidation:
    """Bad configuration raises ConfigError."""

    def test_missing_line(self, loader: ConfigLoader):
        with pytest.raises(ConfigError, match="not found"):
            loader.resolve_line("no_such_line")

    def test_no_defaults_file_uses_model_defaults(self, tmp_path: Path):
        cfg = write_config(tmp_path, None, {"l": {"name": "l", "stations": [station("A")]}})

        params = ConfigLoader(cfg).resolve_line("l").simulation

        assert params == SimulationParams()

    def test_empty_station_list(self, tmp_path: Path):
        cfg = write_config(tmp_path, {}, {"l": {"name": "l", "stations": []}})
        with pytest.raises(ConfigError, match="no stations"):
            ConfigLoader(cfg).resolve_line("l")

    def test_duplicate_station_ids(self, tmp_path: Path):
        cfg = write_config(
            tmp_path, {}, {"l": {"name": "l", "stations": [station("A"), station("A")]}}
        )
        with pytest.raises(ConfigError, match="Duplicate"):
            ConfigLoader(cfg).resolve_line("l")

    def test_non_positive_cycle_time(self, tmp_path: Path):
        cfg = write_config(
            tmp_path, {}, {"l": {"name": "l", "stations": [station("A", cycle_time_sec=0)]}}
        )
        with pytest.raises(ConfigError):
            ConfigLoader(cfg).resolve_line("l")

    def test_probabilities_must_fit_in_one(self, tmp_path: Path):
        cfg = write_config(
            tmp_path,
            {"simulation": {"error_probability": 0.7, "maintenance_probability": 0.4}},
            {"l": {"name": "l", "stations": [station("A")]}},
        )
        with pytest.raises(ConfigError, match="simulation parameters"):
            ConfigLoader(cfg).resolve_line("l")

    def test_probability_out_of_range(self, tmp_path: Path):
        cfg = write_config(
            tmp_path,
            {},
            {"l": {"name": "l", "stations": [station("A")], "simulation": {"error_probability": 1.5}}},
        )
        with pytest.raises(ConfigError):
            ConfigLoader(cfg).resolve_line("l")

    def test_malformed_yaml(self, tmp_path: Path):
        cfg = write_config(tmp_path, {}, {})
        (cfg / "lines" / "bad.yaml").write_text("stations: [unclosed\n")
        with pytest.raises(ConfigError, match="Malformed"):
            ConfigLoader(cfg).resolve_line("bad")

    def test_non_numeric_interval(self, tmp_path: Path):
        cfg = write_config(
            tmp_path,
            {"simulation": {"update_interval_ms": "soon"}},
            {"l": {"name": "l", "stations": [station("A")]}},
        )
        with pytest.raises(ConfigError):
            ConfigLoader(cfg).resolve_line("l")
