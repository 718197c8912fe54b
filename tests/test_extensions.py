"""
Tests for the enforcement handler registry.
"""

from __future__ import annotations

import logging
from typing import Generator

import pytest

from entrapolicy.config import PolicyConfig
from entrapolicy.extensions import (
    ConfigError,
    available_extensions,
    build_extensions,
    get_extension,
    register_extension,
    unregister_extension,
)


class NullExtension:
    def __init__(self, config: PolicyConfig, account_id: str) -> None:
        self.config = config
        self.account_id = account_id

    async def process_group_policy(self, policies) -> bool:
        return True


@pytest.fixture
def registered() -> Generator[list[str], None, None]:
    """Register two handlers for the duration of a test."""
    names = ["alpha-test", "beta-test"]
    for name in names:
        register_extension(name)(NullExtension)
    yield names
    for name in names:
        unregister_extension(name)


class TestRegistry:
    """Tests for register/get/unregister."""

    def test_register_as_decorator(self) -> None:
        @register_extension("decorated-test")
        class Decorated(NullExtension):
            pass

        try:
            assert get_extension("decorated-test") is Decorated
            assert "decorated-test" in available_extensions()
        finally:
            unregister_extension("decorated-test")
        assert "decorated-test" not in available_extensions()

    def test_get_unknown(self) -> None:
        with pytest.raises(ConfigError):
            get_extension("no-such-handler")

    def test_unregister_unknown(self) -> None:
        unregister_extension("no-such-handler")

    def test_reregister_warns(
        self, registered: list[str], caplog: pytest.LogCaptureFixture
    ) -> None:
        def other(config: PolicyConfig, account_id: str) -> NullExtension:
            return NullExtension(config, account_id)

        with caplog.at_level(logging.WARNING):
            register_extension("alpha-test")(other)
        assert get_extension("alpha-test") is other
        assert "re-registered" in caplog.text

    def test_registration_order(self, registered: list[str]) -> None:
        names = available_extensions()
        assert names.index("alpha-test") < names.index("beta-test")


class TestBuildExtensions:
    """Tests for build_extensions."""

    def test_configured_order(self, registered: list[str]) -> None:
        config = PolicyConfig()
        config.extensions.enabled = ["beta-test", "alpha-test"]

        built = build_extensions(config, "alice@contoso.com")

        assert len(built) == 2
        assert all(isinstance(ext, NullExtension) for ext in built)
        assert all(ext.config is config for ext in built)
        assert built[0].account_id == "alice@contoso.com"

    def test_nothing_enabled(self, registered: list[str]) -> None:
        assert build_extensions(PolicyConfig(), "alice@contoso.com") == []

    def test_unknown_enabled(self, registered: list[str]) -> None:
        config = PolicyConfig()
        config.extensions.enabled = ["alpha-test", "missing-test"]

        with pytest.raises(ConfigError):
            build_extensions(config, "alice@contoso.com")
