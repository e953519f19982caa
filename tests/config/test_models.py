from __future__ import annotations

import tempfile
from datetime import timedelta
from pathlib import Path

import pytest

from cygnus.config import CacheConfig, CollectorConfig, GlobalConfig, OutputFormat, ReportOptions
from cygnus.infra import CachePolicy


def test_report_options_defaults() -> None:
    options = ReportOptions()
    assert options.print_headers and options.print_active
    assert not options.print_pending
    assert options.env == []
    assert options.output_format is OutputFormat.TSV


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("TASK_HOST,PORT0", ["TASK_HOST", "PORT0"]),
        (" PORT0 , ,X ", ["PORT0", "X"]),
        (["A", "B"], ["A", "B"]),
        (None, []),
        ("", []),
    ],
)
def test_report_options_env_coercion(raw, expected) -> None:
    assert ReportOptions(env=raw).env == expected


@pytest.mark.parametrize("field", ["max_workers", "retry_attempts", "inactive_page_size", "queue_capacity"])
def test_collector_config_rejects_non_positive(field: str) -> None:
    with pytest.raises(ValueError):
        CollectorConfig(**{field: 0})


def test_cache_config_defaults_to_temp_dir() -> None:
    config = CacheConfig()
    assert config.path == Path(tempfile.gettempdir()) / "cygnus.db"
    assert config.policy is CachePolicy.MIGRATE
    assert config.freshness == timedelta(seconds=1)
    assert CacheConfig(path="").path == config.path


def test_cache_config_validation() -> None:
    with pytest.raises(ValueError):
        CacheConfig(freshness_seconds=-1)
    assert CacheConfig(policy="groom").policy is CachePolicy.GROOM


def test_global_config_presets() -> None:
    config = GlobalConfig()
    assert config.preset(1) == ["TASK_HOST", "PORT0"]
    with pytest.raises(ValueError, match="Unknown environment preset 7"):
        config.preset(7)


def test_global_config_log_file(tmp_path: Path) -> None:
    assert GlobalConfig(log_file="").log_file is None
    assert GlobalConfig(log_file=str(tmp_path / "cygnus.log")).log_file == tmp_path / "cygnus.log"
