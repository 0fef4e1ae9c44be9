from pathlib import Path

import pytest
import yaml

from conftest import ALICE_ADDRESS, BOB_ADDRESS, BOB_SECRET, make_address

from tznft.aliases import (
    AliasFormatError,
    UnknownAliasError,
    add_alias,
    list_aliases,
    remove_alias,
    resolve_address,
    resolve_signer,
)
from tznft.config import ConfigStore, DEFAULT_CONFIG


@pytest.mark.parametrize("kind", ["tz1", "tz2", "tz3", "KT1"])
def test_resolve_address_returns_valid_addresses_unchanged(config, kind: str) -> None:
    address = make_address(kind, 9)

    assert resolve_address(config, address) == address
    assert resolve_address(config, resolve_address(config, address)) == address


def test_resolve_address_uses_configured_alias(config) -> None:
    assert resolve_address(config, " alice ") == ALICE_ADDRESS


def test_resolve_address_derives_address_from_secret_key(config) -> None:
    assert resolve_address(config, BOB_SECRET) == BOB_ADDRESS


def test_resolve_address_rejects_unknown_tokens(config) -> None:
    with pytest.raises(UnknownAliasError):
        resolve_address(config, "mallory")

    corrupted = BOB_ADDRESS[:-1] + ("7" if BOB_ADDRESS[-1] != "7" else "8")
    with pytest.raises(UnknownAliasError):
        resolve_address(config, corrupted)


def test_resolve_signer_from_alias(config) -> None:
    signer = resolve_signer(config, "bob")

    assert signer.public_key_hash() == BOB_ADDRESS


def test_address_only_alias_cannot_sign(config) -> None:
    viewer = make_address("tz1", 4)
    add_alias(config, "viewer", viewer)

    assert resolve_address(config, "viewer") == viewer
    with pytest.raises(UnknownAliasError):
        resolve_signer(config, "viewer")


def test_add_and_remove_alias_persist(tmp_path: Path) -> None:
    path = tmp_path / "tznft.yaml"
    store = ConfigStore(DEFAULT_CONFIG, path=path)

    entry = add_alias(store, "carol", BOB_SECRET)
    assert entry == {"address": BOB_ADDRESS, "secret": BOB_SECRET}
    saved = yaml.safe_load(path.read_text())
    assert saved["availableNetworks"]["sandbox"]["aliases"]["carol"]["address"] == BOB_ADDRESS

    remove_alias(store, "carol")
    assert "carol" not in list_aliases(store)
    with pytest.raises(UnknownAliasError):
        remove_alias(store, "carol")


def test_add_alias_rejects_garbage(config) -> None:
    with pytest.raises(AliasFormatError):
        add_alias(config, "junk", "not-a-key")


def test_aliases_are_scoped_to_the_active_network(config) -> None:
    config.set("activeNetwork", "testnet")

    assert list_aliases(config) == {}
    with pytest.raises(UnknownAliasError):
        resolve_address(config, "bob")


@pytest.mark.parametrize("alias", ["bob", "alice"])
def test_default_aliases_sign_as_their_configured_address(config, alias: str) -> None:
    assert resolve_signer(config, alias).public_key_hash() == resolve_address(config, alias)
