"""Shared configuration store for tznft."""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Protocol

import yaml

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid or incomplete."""


DEFAULT_CONFIG_PATH = Path.home() / ".tznft.yaml"
_CONFIG_PATH_OVERRIDE: Path | None = None

SANDBOX_NETWORK = "sandbox"

DEFAULT_CONFIG: dict[str, Any] = {
    "activeNetwork": SANDBOX_NETWORK,
    "availableNetworks": {
        SANDBOX_NETWORK: {
            "providerUrl": "http://localhost:20000",
            "aliases": {
                "bob": {
                    "address": "tz1aSkwEot3L2kmUvcoxzjMomb9mvBNuzFK6",
                    "secret": "edsk3RFfvaFaxbHx8BMtEW1rKQcPtDML3LXjNqMNLCzC3wLC1bWbAt",
                },
                "alice": {
                    "address": "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb",
                    "secret": "edsk3QoqBuvdamxouPhin7swCvkQNgq4jP5KZPbwWNnwdZpSpJiEbq",
                },
            },
        },
        "testnet": {
            "providerUrl": "https://ghostnet.ecadinfra.com",
            "aliases": {},
        },
    },
}


class ConfigReader(Protocol):
    """Read-only view of the configuration store."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under the dotted ``key``."""


class ConfigWriter(ConfigReader, Protocol):
    """Configuration store that can also be mutated."""

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under the dotted ``key``."""

    def delete(self, key: str) -> None:
        """Remove the dotted ``key`` if present."""


class ConfigStore:
    """Dotted-key configuration backed by a YAML document.

    Every mutation is written back to ``path`` immediately, so a store never
    holds unsaved changes. Pass ``path=None`` for a purely in-memory store.
    """

    def __init__(self, data: Mapping[str, Any] | None = None, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = copy.deepcopy(dict(data or {}))

    @property
    def data(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
        self.save()

    def delete(self, key: str) -> None:
        parts = key.split(".")
        node: Any = self._data
        for part in parts[:-1]:
            node = node.get(part) if isinstance(node, dict) else None
            if node is None:
                return
        if isinstance(node, dict) and parts[-1] in node:
            del node[parts[-1]]
            self.save()

    def save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(self._data, sort_keys=False))
        logger.debug("Saved configuration to %s", self.path)


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML mapping")
    return loaded


def load_user_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ConfigStore:
    """Load the user configuration, falling back to the bundled defaults.

    The path is taken from ``config_path``, then from a path remembered via
    :func:`set_default_config_path`, then from ``TZNFT_CONFIG`` and finally
    ``~/.tznft.yaml``. A missing file is not an error; the defaults are used
    and the file is created on the first write.
    """

    env_map = os.environ if env is None else env
    if config_path is not None:
        path = Path(config_path).expanduser()
    elif _CONFIG_PATH_OVERRIDE is not None:
        path = _CONFIG_PATH_OVERRIDE
    elif env_map.get("TZNFT_CONFIG"):
        path = Path(env_map["TZNFT_CONFIG"]).expanduser()
    else:
        path = DEFAULT_CONFIG_PATH

    loaded = _load_config_file(path)
    if loaded is None:
        logger.debug("No config file at %s; using defaults", path)
        return ConfigStore(DEFAULT_CONFIG, path=path)
    return ConfigStore(loaded, path=path)


def active_network(config: ConfigReader) -> str:
    network = config.get("activeNetwork")
    if not network or not isinstance(network, str):
        raise ConfigurationError("No active network is selected; run 'tznft set-network <name>'")
    return network


def active_network_key(config: ConfigReader) -> str:
    return f"availableNetworks.{active_network(config)}"


def provider_url_key(config: ConfigReader) -> str:
    return f"{active_network_key(config)}.providerUrl"


def inspector_key(config: ConfigReader) -> str:
    return f"{active_network_key(config)}.inspector"


def aliases_key(config: ConfigReader) -> str:
    return f"{active_network_key(config)}.aliases"


def is_sandbox(config: ConfigReader) -> bool:
    return config.get("activeNetwork") == SANDBOX_NETWORK


def list_networks(config: ConfigReader) -> list[str]:
    networks = config.get("availableNetworks", {})
    if not isinstance(networks, dict):
        raise ConfigurationError("Expected 'availableNetworks' to be a mapping")
    return list(networks)


def set_network(config: ConfigWriter, network: str) -> None:
    """Switch the active network, rejecting names that are not configured."""

    available = list_networks(config)
    if network not in available:
        raise ConfigurationError(
            f"Network {network!r} is not configured; available networks: {', '.join(available) or '(none)'}"
        )
    config.set("activeNetwork", network)
    logger.info("Active network set to %s", network)
