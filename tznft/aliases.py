"""Alias resolution and management.

Aliases live under ``availableNetworks.<network>.aliases`` in the user
configuration. Each entry holds an ``address`` and, for signing identities,
an unencrypted ``secret`` key.
"""

from __future__ import annotations

import logging
from typing import Any

from .base58 import is_valid_address
from .config import ConfigReader, ConfigWriter, aliases_key
from .signer import InMemorySigner, is_valid_secret

logger = logging.getLogger(__name__)


class UnknownAliasError(LookupError):
    """Raised when a token is neither a configured alias nor a valid address/key."""

    def __init__(self, token: str, reason: str | None = None) -> None:
        message = f"{token!r} is not a configured alias or a valid address/key"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.token = token


class AliasFormatError(ValueError):
    """Raised when an alias definition is not an address or secret key."""


def _alias_entry(config: ConfigReader, alias: str) -> dict[str, Any] | None:
    aliases = config.get(aliases_key(config)) or {}
    entry = aliases.get(alias) if isinstance(aliases, dict) else None
    return entry if isinstance(entry, dict) else None


def resolve_signer(config: ConfigReader, token: str) -> InMemorySigner:
    """Return a signer for a configured alias or a literal secret key."""

    token = token.strip()
    entry = _alias_entry(config, token)
    if entry is not None:
        secret = entry.get("secret")
        if not secret:
            raise UnknownAliasError(token, "alias has no secret key and cannot sign")
        return InMemorySigner(secret)
    if is_valid_secret(token):
        return InMemorySigner(token)
    raise UnknownAliasError(token)


def resolve_address(config: ConfigReader, token: str) -> str:
    """Return the canonical address for an alias, address or secret key.

    Resolving an address that is already valid returns it unchanged.
    """

    token = token.strip()
    entry = _alias_entry(config, token)
    if entry is not None:
        address = entry.get("address")
        if address:
            return address
        if entry.get("secret"):
            return InMemorySigner(entry["secret"]).public_key_hash()
        raise UnknownAliasError(token, "alias has neither address nor secret")
    if is_valid_address(token):
        return token
    if is_valid_secret(token):
        return InMemorySigner(token).public_key_hash()
    raise UnknownAliasError(token)


def list_aliases(config: ConfigReader) -> dict[str, dict[str, Any]]:
    aliases = config.get(aliases_key(config)) or {}
    return {name: dict(entry) for name, entry in aliases.items() if isinstance(entry, dict)}


def add_alias(config: ConfigWriter, alias: str, key_or_address: str) -> dict[str, Any]:
    """Store ``alias`` for the active network and return the saved entry."""

    alias = alias.strip()
    value = key_or_address.strip()
    if not alias:
        raise AliasFormatError("Alias name must not be empty")
    if is_valid_address(value):
        entry: dict[str, Any] = {"address": value}
    elif is_valid_secret(value):
        entry = {"address": InMemorySigner(value).public_key_hash(), "secret": value}
    else:
        raise AliasFormatError(f"{value!r} is neither a valid address nor an edsk secret key")

    if _alias_entry(config, alias) is not None:
        logger.warning("Replacing existing alias %s", alias)
    config.set(f"{aliases_key(config)}.{alias}", entry)
    logger.info("Added alias %s -> %s", alias, entry["address"])
    return entry


def remove_alias(config: ConfigWriter, alias: str) -> None:
    if _alias_entry(config, alias) is None:
        raise UnknownAliasError(alias)
    config.delete(f"{aliases_key(config)}.{alias}")
    logger.info("Removed alias %s", alias)
