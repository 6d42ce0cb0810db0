"""Tests for ccli.config — settings loading and validation."""

import pytest

from ccli.config import DEFAULTS, loadSettings, settingsFrom
from tests.conftest import CONTRACT


class TestSettingsFrom:
    def test_defaults(self):
        s = settingsFrom(DEFAULTS)
        assert s.rpcUrl == "http://127.0.0.1:8545"
        assert s.contractAddress == ""
        assert s.explorerUrl == "https://sepolia.etherscan.io"
        assert s.confirmTimeout == 120.0
        assert s.pollInterval == 1.0
        assert s.logLevel == "INFO"
        assert s.timezone == "UTC"

    def test_contract_is_checksummed(self):
        s = settingsFrom({**DEFAULTS, "CCLI_CONTRACT_ADDRESS": CONTRACT.lower()})
        assert s.contractAddress == CONTRACT

    def test_zero_timeout_disables_it(self):
        s = settingsFrom({**DEFAULTS, "CCLI_CONFIRM_TIMEOUT": "0"})
        assert s.confirmTimeout is None

    def test_empty_value_uses_default(self):
        s = settingsFrom({**DEFAULTS, "CCLI_POLL_INTERVAL": ""})
        assert s.pollInterval == 1.0

    def test_explorer_trailing_slash_removed(self):
        s = settingsFrom({**DEFAULTS, "CCLI_EXPLORER_URL": "https://etherscan.io/"})
        assert s.explorerUrl == "https://etherscan.io"

    def test_log_level_case_insensitive(self):
        assert settingsFrom({**DEFAULTS, "CCLI_LOGLEVEL": "debug"}).logLevel == "DEBUG"

    @pytest.mark.parametrize("key,value", [
        ("CCLI_CONTRACT_ADDRESS", "0x1234"),
        ("CCLI_CONFIRM_TIMEOUT", "soon"),
        ("CCLI_CONFIRM_TIMEOUT", "-1"),
        ("CCLI_POLL_INTERVAL", "0"),
        ("CCLI_WATCH_INTERVAL", "-2"),
        ("CCLI_LOGLEVEL", "LOUD"),
        ("CCLI_TIMEZONE", "Mars/Olympus_Mons"),
    ])
    def test_invalid_values(self, key, value):
        with pytest.raises(ValueError):
            settingsFrom({**DEFAULTS, key: value})


class TestLoadSettings:
    def test_env_file_then_environment(self, tmp_path, monkeypatch):
        env = tmp_path / ".env.ccli"
        env.write_text(f"CCLI_CONTRACT_ADDRESS={CONTRACT}\nCCLI_POLL_INTERVAL=3\n")
        monkeypatch.setenv("CCLI_POLL_INTERVAL", "4")

        s = loadSettings(str(env))

        assert s.contractAddress == CONTRACT
        # process environment wins over the file
        assert s.pollInterval == 4.0

    def test_missing_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CCLI_RPC_URL", raising=False)
        s = loadSettings(str(tmp_path / "nope"))
        assert s.rpcUrl == DEFAULTS["CCLI_RPC_URL"]
