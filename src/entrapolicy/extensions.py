"""
Enforcement handler boundary.

Handlers (client side extensions) receive the resolved policy list and
apply the settings they care about to the host. Concrete handlers live
outside this package and register themselves by name.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Protocol

if TYPE_CHECKING:
    from entrapolicy.config import PolicyConfig
    from entrapolicy.policy.models import Policy


logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Configuration cannot be used as given."""

    pass


class ClientSideExtension(Protocol):
    """Protocol for enforcement handlers."""

    async def process_group_policy(self, policies: list[Policy]) -> bool:
        """Apply the settings of the given policies; return True on success."""
        ...


ExtensionFactory = Callable[["PolicyConfig", str], ClientSideExtension]

_REGISTRY: dict[str, ExtensionFactory] = {}


def register_extension(name: str) -> Callable[[ExtensionFactory], ExtensionFactory]:
    """
    Register an enforcement handler factory under a name.

    The factory is called as ``factory(config, account_id)``. Usable as a
    class decorator.
    """

    def decorator(factory: ExtensionFactory) -> ExtensionFactory:
        if name in _REGISTRY and _REGISTRY[name] is not factory:
            logger.warning("Extension %s re-registered", name)
        _REGISTRY[name] = factory
        return factory

    return decorator


def unregister_extension(name: str) -> None:
    """Remove a registered handler factory (no-op if unknown)."""
    _REGISTRY.pop(name, None)


def get_extension(name: str) -> ExtensionFactory:
    """
    Get a registered handler factory.

    Raises:
        ConfigError: If no handler is registered under the name
    """
    try:
        return _REGISTRY[name]
    except KeyError:
        raise ConfigError(f"Unknown extension: {name}") from None


def available_extensions() -> list[str]:
    """List registered handler names in registration order."""
    return list(_REGISTRY)


def build_extensions(config: PolicyConfig, account_id: str) -> list[ClientSideExtension]:
    """
    Construct the enabled handlers in configured order.

    Raises:
        ConfigError: If an enabled handler is not registered
    """
    return [get_extension(name)(config, account_id) for name in config.extensions.enabled]
