import json

from app.config import AppConfig, PathsConfig, load_config


def test_defaults(tmp_path):
    config = load_config(tmp_path / "missing.json")
    assert config.wager.max_deposit == 5 * 10**16
    assert config.wager.prize_multiplier == 190
    assert config.vrf.num_words == 1
    assert config.vrf.minimum_request_confirmations == 3


def test_config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"wager": {"max_deposit": 1000}, "vrf": {"auto_fulfill": True}}))

    config = load_config(path)

    assert config.wager.max_deposit == 1000
    assert config.vrf.auto_fulfill is True


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"wager": {"max_deposit": 1000}}))
    monkeypatch.setenv("WAGER_MAX_DEPOSIT", "0x10")
    monkeypatch.setenv("WAGER_OWNER", "0xABCDEF0000000000000000000000000000000001")
    monkeypatch.setenv("VRF_AUTO_FULFILL", "yes")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = load_config(path)

    assert config.wager.max_deposit == 16
    assert config.wager.owner == "0xabcdef0000000000000000000000000000000001"
    assert config.vrf.auto_fulfill is True
    assert config.logging.level == "DEBUG"


def test_model_round_trip():
    config = AppConfig()
    assert AppConfig(**config.model_dump()) == config


def test_default_path_comes_from_paths_config(tmp_path, monkeypatch):
    (tmp_path / "config.json").write_text(json.dumps({"wager": {"max_deposit": 42}}))
    monkeypatch.setattr("app.config.PROJECT_ROOT", tmp_path)

    assert PathsConfig().get_config_path() == tmp_path / "config.json"
    assert load_config().wager.max_deposit == 42
