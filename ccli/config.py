"""Runtime settings from ``.env.ccli`` overlaid by the process environment."""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

import whenever
from dotenv import dotenv_values
from eth_utils import is_address, to_checksum_address

ENV_FILE: Final = ".env.ccli"

DEFAULTS: Final = dict(
    CCLI_RPC_URL="http://127.0.0.1:8545",
    CCLI_CONTRACT_ADDRESS="",
    CCLI_EXPLORER_URL="https://sepolia.etherscan.io",
    CCLI_CONFIRM_TIMEOUT="120",
    CCLI_POLL_INTERVAL="1.0",
    CCLI_WATCH_INTERVAL="2.0",
    CCLI_LOGDIR="runlogs",
    CCLI_LOGLEVEL="INFO",
    CCLI_TIMEZONE="UTC",
)

LOG_LEVELS: Final = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


@dataclass(slots=True, frozen=True)
class Settings:
    rpcUrl: str
    contractAddress: str
    explorerUrl: str

    # seconds; None waits for confirmation forever
    confirmTimeout: float | None
    pollInterval: float
    watchInterval: float

    logDir: str
    logLevel: str
    timezone: str


def _seconds(config: Mapping[str, str | None], key: str, *, allowZero: bool = False) -> float:
    raw = config.get(key) or DEFAULTS[key]
    try:
        val = float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number of seconds, got {raw!r}") from None

    if val < 0 or (val == 0 and not allowZero):
        raise ValueError(f"{key} must be positive, got {raw!r}")

    return val


def settingsFrom(config: Mapping[str, str | None]) -> Settings:
    """Validate a raw key/value mapping into ``Settings``."""
    get = lambda key: (config.get(key) or DEFAULTS[key]).strip()  # noqa: E731

    contract = get("CCLI_CONTRACT_ADDRESS")
    if contract:
        if not is_address(contract):
            raise ValueError(f"CCLI_CONTRACT_ADDRESS is not an address: {contract!r}")

        contract = to_checksum_address(contract)

    level = get("CCLI_LOGLEVEL").upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"CCLI_LOGLEVEL must be one of {sorted(LOG_LEVELS)}, got {level!r}")

    tz = get("CCLI_TIMEZONE")
    try:
        whenever.ZonedDateTime.now(tz)
    except Exception as e:
        raise ValueError(f"CCLI_TIMEZONE is not a known timezone: {tz!r}") from e

    confirmTimeout = _seconds(config, "CCLI_CONFIRM_TIMEOUT", allowZero=True)

    return Settings(
        rpcUrl=get("CCLI_RPC_URL"),
        contractAddress=contract,
        explorerUrl=get("CCLI_EXPLORER_URL").rstrip("/"),
        confirmTimeout=confirmTimeout or None,
        pollInterval=_seconds(config, "CCLI_POLL_INTERVAL"),
        watchInterval=_seconds(config, "CCLI_WATCH_INTERVAL"),
        logDir=get("CCLI_LOGDIR"),
        logLevel=level,
        timezone=tz,
    )


def loadSettings(envFile: str = ENV_FILE) -> Settings:
    config = {**DEFAULTS, **dotenv_values(envFile), **os.environ}
    return settingsFrom(config)
