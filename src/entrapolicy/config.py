"""
Configuration management for the policy engine.

Handles loading, validation, and access to engine configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from entrapolicy.extensions import available_extensions


# Default configuration path
DEFAULT_CONFIG_PATH = Path("/etc/entra-policy/policy.yaml")


class DomainResolutionError(Exception):
    """Account id could not be mapped to a directory service endpoint."""

    pass


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "info"
    file: str | None = None


@dataclass
class GraphConfig:
    """Directory service settings."""

    default_url: str | None = None
    timeout: float = 30.0
    cache_membership: bool = True
    domains: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Domain lookups are case-insensitive
        self.domains = {
            domain.lower(): url for domain, url in (self.domains or {}).items()
        }


@dataclass
class ExtensionsConfig:
    """Enforcement handler settings."""

    enabled: list[str] = field(default_factory=list)
    options: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class PolicyConfig:
    """Main configuration container."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    extensions: ExtensionsConfig = field(default_factory=ExtensionsConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyConfig:
        """Create configuration from dictionary."""
        return cls(
            logging=LoggingConfig(**(data.get("logging") or {})),
            graph=GraphConfig(**(data.get("graph") or {})),
            extensions=ExtensionsConfig(**(data.get("extensions") or {})),
        )

    def get_graph_url(self, domain: str) -> str | None:
        """
        Look up the directory service endpoint for a domain.

        Args:
            domain: Account domain (case-insensitive)

        Returns:
            Endpoint URL, or None if the domain is unknown and no default is set
        """
        return self.graph.domains.get(domain.lower(), self.graph.default_url)

    def extension_options(self, name: str) -> dict[str, Any]:
        """Get the option mapping for one enforcement handler."""
        return dict(self.extensions.options.get(name) or {})


def split_username(account_id: str) -> tuple[str, str] | None:
    """
    Split an account id into user and domain.

    Args:
        account_id: Account in ``user@domain`` form

    Returns:
        (user, domain) tuple, or None if the id has no user or domain part
    """
    user, sep, domain = account_id.rpartition("@")
    if not sep or not user or not domain:
        return None
    return user, domain


def resolve_graph_url(config: PolicyConfig, account_id: str) -> str:
    """
    Resolve the directory service endpoint for an account.

    Raises:
        DomainResolutionError: If the domain cannot be parsed or is unknown
    """
    parts = split_username(account_id)
    if parts is None:
        raise DomainResolutionError(
            f"Failed to parse domain name from account id '{account_id}'"
        )
    _, domain = parts
    graph_url = config.get_graph_url(domain)
    if not graph_url:
        raise DomainResolutionError(f"Failed to find graph url for domain {domain}")
    return graph_url


def load_config(path: str | Path | None = None) -> PolicyConfig:
    """
    Load configuration from YAML file.

    Args:
        path: Path to configuration file. If None, uses default paths.

    Returns:
        PolicyConfig instance with loaded settings.

    Raises:
        FileNotFoundError: If an explicit config file is not found.
        yaml.YAMLError: If config file is invalid YAML.
    """
    if path is None:
        # Try default locations
        candidates = [
            DEFAULT_CONFIG_PATH,
            Path("config/policy.yaml"),
            Path("policy.yaml"),
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path is None:
        # Return default configuration
        return PolicyConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return PolicyConfig.from_dict(data)


def validate_config(config: PolicyConfig) -> list[str]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate.

    Returns:
        List of error messages. Empty list if valid.
    """
    errors: list[str] = []

    # Validate log level
    valid_log_levels = {"debug", "info", "warning", "error"}
    if config.logging.level not in valid_log_levels:
        errors.append(f"Invalid logging level: {config.logging.level}")

    if config.graph.timeout <= 0:
        errors.append(f"Invalid graph timeout: {config.graph.timeout}")

    # Validate endpoint URLs
    urls = dict(config.graph.domains)
    if config.graph.default_url is not None:
        urls["default_url"] = config.graph.default_url
    for name, url in urls.items():
        if not url.startswith(("https://", "http://")):
            errors.append(f"Invalid graph url for {name}: {url}")

    # Validate enforcement handler names
    known = set(available_extensions())
    for name in config.extensions.enabled:
        if name not in known:
            errors.append(f"Unknown extension: {name}")

    return errors
