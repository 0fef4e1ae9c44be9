from pathlib import Path

import pytest
import yaml

from tznft.config import (
    ConfigStore,
    ConfigurationError,
    active_network_key,
    inspector_key,
    is_sandbox,
    list_networks,
    load_user_config,
    provider_url_key,
    set_network,
)


def test_missing_file_yields_defaults_without_writing(tmp_path: Path) -> None:
    path = tmp_path / "missing.yaml"

    config = load_user_config(config_path=path, env={})

    assert config.get("activeNetwork") == "sandbox"
    assert config.get(provider_url_key(config)) == "http://localhost:20000"
    assert not path.exists()


def test_environment_selects_config_path(tmp_path: Path) -> None:
    path = tmp_path / "env.yaml"
    path.write_text(
        """
        activeNetwork: testnet
        availableNetworks:
          testnet:
            providerUrl: https://node.example
        """
    )

    config = load_user_config(env={"TZNFT_CONFIG": str(path)})

    assert active_network_key(config) == "availableNetworks.testnet"
    assert config.get(provider_url_key(config)) == "https://node.example"
    assert not is_sandbox(config)


def test_set_writes_through_to_yaml(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.yaml"
    config = load_user_config(config_path=path, env={})

    config.set(inspector_key(config), "KT1inspector")

    saved = yaml.safe_load(path.read_text())
    assert saved["availableNetworks"]["sandbox"]["inspector"] == "KT1inspector"
    assert load_user_config(config_path=path, env={}).get(inspector_key(config)) == "KT1inspector"


def test_non_mapping_document_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigurationError):
        load_user_config(config_path=path, env={})


def test_set_network_requires_configured_network() -> None:
    config = ConfigStore({"activeNetwork": "sandbox", "availableNetworks": {"sandbox": {}, "testnet": {}}})

    set_network(config, "testnet")
    assert config.get("activeNetwork") == "testnet"
    assert list_networks(config) == ["sandbox", "testnet"]

    with pytest.raises(ConfigurationError):
        set_network(config, "mainnet")


def test_missing_active_network_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        inspector_key(ConfigStore({}))


def test_delete_removes_nested_key() -> None:
    config = ConfigStore({"a": {"b": {"c": 1, "d": 2}}})

    config.delete("a.b.c")
    config.delete("a.x.y")

    assert config.get("a.b") == {"d": 2}
