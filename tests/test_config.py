"""
Tests for configuration loading and validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from entrapolicy.config import (
    DomainResolutionError,
    PolicyConfig,
    load_config,
    resolve_graph_url,
    split_username,
    validate_config,
)
from entrapolicy.extensions import register_extension, unregister_extension
from tests.fakes import GRAPH_URL


class TestPolicyConfig:
    """Tests for PolicyConfig dataclass."""

    def test_default_config(self) -> None:
        """Test default configuration values."""
        config = PolicyConfig()

        assert config.logging.level == "info"
        assert config.logging.file is None
        assert config.graph.default_url is None
        assert config.graph.timeout == 30.0
        assert config.graph.cache_membership is True
        assert config.graph.domains == {}
        assert config.extensions.enabled == []

    def test_from_dict(self) -> None:
        """Test creating config from dictionary."""
        data = {
            "logging": {"level": "debug"},
            "graph": {"timeout": 5, "domains": {"Example.COM": "https://graph.example"}},
        }
        config = PolicyConfig.from_dict(data)

        assert config.logging.level == "debug"
        assert config.graph.timeout == 5
        assert config.graph.domains == {"example.com": "https://graph.example"}
        # Check defaults still work
        assert config.graph.cache_membership is True

    def test_from_dict_empty(self) -> None:
        """Test creating config from empty dictionary."""
        config = PolicyConfig.from_dict({})

        assert config.logging.level == "info"
        assert config.graph.domains == {}

    def test_from_dict_null_sections(self) -> None:
        """Empty YAML sections load as defaults."""
        config = PolicyConfig.from_dict({"graph": None, "extensions": None})
        assert config.graph.timeout == 30.0
        assert config.extensions.enabled == []

    def test_get_graph_url(self) -> None:
        config = PolicyConfig.from_dict({
            "graph": {
                "default_url": "https://graph.default",
                "domains": {"contoso.com": "https://graph.contoso"},
            },
        })

        assert config.get_graph_url("CONTOSO.com") == "https://graph.contoso"
        assert config.get_graph_url("fabrikam.com") == "https://graph.default"

    def test_get_graph_url_unknown(self) -> None:
        assert PolicyConfig().get_graph_url("contoso.com") is None

    def test_extension_options(self) -> None:
        config = PolicyConfig.from_dict({
            "extensions": {"enabled": ["ssh"], "options": {"ssh": {"path": "/etc/ssh"}}},
        })

        options = config.extension_options("ssh")
        assert options == {"path": "/etc/ssh"}
        options["path"] = "changed"
        assert config.extension_options("ssh") == {"path": "/etc/ssh"}
        assert config.extension_options("motd") == {}


class TestDomainResolution:
    """Tests for account id handling."""

    def test_split_username(self) -> None:
        assert split_username("alice@contoso.com") == ("alice", "contoso.com")

    def test_split_username_last_at(self) -> None:
        assert split_username("a@b@contoso.com") == ("a@b", "contoso.com")

    @pytest.mark.parametrize("account_id", ["alice", "@contoso.com", "alice@", ""])
    def test_split_username_invalid(self, account_id: str) -> None:
        assert split_username(account_id) is None

    def test_resolve_graph_url(self, sample_config: Path) -> None:
        config = load_config(sample_config)
        assert resolve_graph_url(config, "alice@contoso.onmicrosoft.com") == GRAPH_URL

    def test_resolve_unparseable_account(self) -> None:
        with pytest.raises(DomainResolutionError):
            resolve_graph_url(PolicyConfig(), "alice")

    def test_resolve_unknown_domain(self) -> None:
        config = PolicyConfig.from_dict({"graph": {"domains": {"contoso.com": GRAPH_URL}}})
        with pytest.raises(DomainResolutionError):
            resolve_graph_url(config, "alice@fabrikam.com")


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_from_file(self, sample_config: Path) -> None:
        """Test loading configuration from file."""
        config = load_config(sample_config)

        assert config.logging.level == "debug"
        assert config.graph.timeout == 10
        assert config.graph.domains == {"contoso.onmicrosoft.com": GRAPH_URL}
        assert config.extensions.enabled == []

    def test_load_missing_file(self, temp_dir: Path) -> None:
        """Test loading from non-existent file raises error."""
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "nonexistent.yaml")

    def test_load_default_when_no_path(self) -> None:
        """Test loading returns default config when no file found."""
        config = load_config(None)
        assert isinstance(config, PolicyConfig)

    def test_load_from_working_directory(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """policy.yaml in the working directory is picked up."""
        if Path("/etc/entra-policy/policy.yaml").exists():
            pytest.skip("system configuration present")
        (temp_dir / "policy.yaml").write_text(yaml.dump({"graph": {"timeout": 3}}))
        monkeypatch.chdir(temp_dir)

        assert load_config(None).graph.timeout == 3

    def test_load_empty_file(self, temp_dir: Path) -> None:
        empty = temp_dir / "empty.yaml"
        empty.write_text("")
        assert load_config(empty) == PolicyConfig()

    def test_load_invalid_yaml(self, temp_dir: Path) -> None:
        """Test loading invalid YAML raises error."""
        bad_file = temp_dir / "bad.yaml"
        bad_file.write_text("invalid: yaml: content: [")

        with pytest.raises(yaml.YAMLError):
            load_config(bad_file)


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config(self) -> None:
        """Test validation passes for valid config."""
        assert validate_config(PolicyConfig()) == []

    def test_invalid_log_level(self) -> None:
        config = PolicyConfig()
        config.logging.level = "invalid"

        errors = validate_config(config)
        assert any("logging level" in e for e in errors)

    def test_invalid_timeout(self) -> None:
        config = PolicyConfig()
        config.graph.timeout = 0

        errors = validate_config(config)
        assert any("timeout" in e for e in errors)

    def test_invalid_url(self) -> None:
        config = PolicyConfig.from_dict({
            "graph": {"default_url": "graph.test", "domains": {"contoso.com": "ftp://x"}},
        })

        errors = validate_config(config)
        assert len(errors) == 2
        assert any("contoso.com" in e for e in errors)
        assert any("default_url" in e for e in errors)

    def test_unknown_extension(self) -> None:
        config = PolicyConfig()
        config.extensions.enabled = ["no-such-handler"]

        errors = validate_config(config)
        assert errors == ["Unknown extension: no-such-handler"]

    def test_registered_extension(self) -> None:
        register_extension("config-test")(lambda config, account_id: None)
        try:
            config = PolicyConfig()
            config.extensions.enabled = ["config-test"]
            assert validate_config(config) == []
        finally:
            unregister_extension("config-test")
