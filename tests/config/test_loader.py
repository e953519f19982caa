from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from cygnus.config import CacheConfig, ConfigLocator, ConfigRepository, GlobalConfig
from cygnus.infra import CachePolicy


def test_config_locator_prefers_explicit_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CYGNUS_HOME", str(tmp_path / "from-env"))
    assert ConfigLocator(home=tmp_path / "explicit").home == (tmp_path / "explicit").resolve()
    assert ConfigLocator().home == (tmp_path / "from-env").resolve()


def test_config_locator_defaults_to_yaml(tmp_path: Path) -> None:
    locator = ConfigLocator(home=tmp_path)
    assert locator.global_config_path() == tmp_path.resolve() / "config.yaml"
    (tmp_path / "config.json").write_text("{}", encoding="utf-8")
    assert locator.global_config_path() == tmp_path.resolve() / "config.json"


def test_first_load_writes_defaults(temp_config_repository: ConfigRepository) -> None:
    config = temp_config_repository.load_global_config()
    path = temp_config_repository.locator.global_config_path()
    assert path.exists()
    assert config == GlobalConfig()
    assert temp_config_repository.load_global_config() is config


def test_config_repository_global_roundtrip(tmp_path: Path) -> None:
    repo = ConfigRepository(ConfigLocator(home=tmp_path))
    config = GlobalConfig(
        cache=CacheConfig(path=tmp_path / "c.db", policy=CachePolicy.GROOM),
        env_presets={1: ["TASK_HOST", "PORT0"], 2: ["JAVA_OPTS"]},
    )
    path = repo.save_global_config(config)

    loaded = ConfigRepository(ConfigLocator(home=tmp_path)).load_global_config()

    assert path.suffix == ".yaml"
    assert loaded == config
    assert loaded.preset(2) == ["JAVA_OPTS"]


def test_config_repository_reads_json(tmp_path: Path) -> None:
    payload = {"collector": {"max_workers": 3}, "upstream": {"timeout": 2.5}}
    (tmp_path / "config.json").write_text(json.dumps(payload), encoding="utf-8")
    loaded = ConfigRepository(ConfigLocator(home=tmp_path)).load_global_config()
    assert loaded.collector.max_workers == 3
    assert loaded.upstream.timeout == 2.5


def test_config_repository_rejects_non_mapping(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text(yaml.safe_dump(["not", "a", "mapping"]), encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        ConfigRepository(ConfigLocator(home=tmp_path)).load_global_config()
