# -*- coding: utf-8 -*-
"""Location: ./fmgateway/services/target_registry.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Target Registry.

Turns the flat ``FM_*_<ID>`` configuration namespace into FileMaker target
profiles. Each identifier found in an ``FM_SERVER_<ID>`` key is validated on
its own; incomplete groups are dropped with a warning and only an empty result
is an error.

Recognised keys per identifier:
    FM_SERVER_<ID>: Host of FileMaker Server
    FM_DATABASE_<ID>: Hosted database name
    FM_ACCOUNT_<ID> / FM_PASSWORD_<ID>: Account credentials
    FM_API_KEY_<ID>: API key, used when no complete account pair exists
"""

# Standard
import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

# Third-Party
from dotenv import dotenv_values
from pydantic import SecretStr

# First-Party
from fmgateway.schemas import ApiKey, Credentials, TargetProfile, UsernamePassword
from fmgateway.services.errors import ConfigurationError

logger = logging.getLogger(__name__)

SERVER_PREFIX = "FM_SERVER_"
DATABASE_PREFIX = "FM_DATABASE_"
ACCOUNT_PREFIX = "FM_ACCOUNT_"
PASSWORD_PREFIX = "FM_PASSWORD_"
API_KEY_PREFIX = "FM_API_KEY_"


def load_config_source(env_file: Optional[Union[str, Path]] = ".env") -> Dict[str, str]:
    """Build the flat configuration mapping discovery reads from.

    Values from the ``.env`` file are overlaid by the process environment.

    Args:
        env_file: Optional dotenv file; ignored when missing.

    Returns:
        Dict[str, str]: Snapshot of the configuration space.
    """
    source: Dict[str, str] = {}
    if env_file and Path(env_file).is_file():
        source.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    source.update(os.environ)
    return source


def _value(config_source: Mapping[str, str], key: str) -> str:
    """Return a stripped configuration value, empty when unset.

    Args:
        config_source: Flat configuration mapping.
        key: Key to read.

    Returns:
        str: The stripped value or ``""``.
    """
    return (config_source.get(key) or "").strip()


def _resolve_credentials(config_source: Mapping[str, str], identifier: str) -> Optional[Credentials]:
    """Pick the credential variant for an identifier.

    Args:
        config_source: Flat configuration mapping.
        identifier: Target identifier.

    Returns:
        Account credentials when both halves exist, else an api key, else None.
    """
    username = _value(config_source, ACCOUNT_PREFIX + identifier)
    password = _value(config_source, PASSWORD_PREFIX + identifier)
    if username and password:
        return UsernamePassword(username=username, password=SecretStr(password))

    api_key = _value(config_source, API_KEY_PREFIX + identifier)
    if api_key:
        return ApiKey(api_key=SecretStr(api_key))
    return None


def discover(config_source: Mapping[str, str], protocol: str = "https", api_version: str = "v1") -> Dict[str, TargetProfile]:
    """Discover valid FileMaker targets in a configuration snapshot.

    Args:
        config_source: Flat key/value configuration (environment-like).
        protocol: Scheme shared by all targets.
        api_version: Data API version shared by all targets.

    Returns:
        Dict[str, TargetProfile]: Valid targets keyed and sorted by identifier.

    Raises:
        ConfigurationError: If no identifier yields a valid target.

    Examples:
        >>> env = {
        ...     "FM_SERVER_SALES": "fm.example.com", "FM_DATABASE_SALES": "Sales",
        ...     "FM_ACCOUNT_SALES": "api", "FM_PASSWORD_SALES": "secret",
        ...     "FM_SERVER_HR": "fm.example.com", "FM_DATABASE_HR": "HR", "FM_API_KEY_HR": "key",
        ...     "FM_SERVER_OPS": "fm.example.com", "FM_DATABASE_OPS": "Ops", "FM_ACCOUNT_OPS": "api",
        ... }
        >>> sorted(discover(env))
        ['HR', 'SALES']
        >>> discover(env)["HR"].credentials.kind
        'api_key'
        >>> discover({"FM_SERVER_X": "host"})
        Traceback (most recent call last):
        ...
        fmgateway.services.errors.ConfigurationError: No valid FileMaker database configurations found (expected FM_SERVER_<ID>, FM_DATABASE_<ID> and FM_ACCOUNT_<ID>/FM_PASSWORD_<ID> or FM_API_KEY_<ID>)
    """
    identifiers = sorted({key[len(SERVER_PREFIX) :] for key in config_source if key.startswith(SERVER_PREFIX) and len(key) > len(SERVER_PREFIX)})
    targets: Dict[str, TargetProfile] = {}

    for identifier in identifiers:
        server = _value(config_source, SERVER_PREFIX + identifier)
        database = _value(config_source, DATABASE_PREFIX + identifier)
        credentials = _resolve_credentials(config_source, identifier)

        missing = [
            name
            for name, present in (
                (SERVER_PREFIX + identifier, bool(server)),
                (DATABASE_PREFIX + identifier, bool(database)),
                ("credentials", credentials is not None),
            )
            if not present
        ]
        if missing:
            logger.warning("Skipping FileMaker target %s: missing %s", identifier, ", ".join(missing))
            continue

        targets[identifier] = TargetProfile(
            id=identifier,
            server=server,
            database=database,
            protocol=protocol,
            api_version=api_version,
            credentials=credentials,
        )

    if not targets:
        raise ConfigurationError(
            "No valid FileMaker database configurations found "
            "(expected FM_SERVER_<ID>, FM_DATABASE_<ID> and FM_ACCOUNT_<ID>/FM_PASSWORD_<ID> or FM_API_KEY_<ID>)"
        )

    logger.info("Discovered %d FileMaker database(s): %s", len(targets), ", ".join(targets))
    return targets
