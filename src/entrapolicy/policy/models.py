"""
Policy data models.

Each directory policy source (configuration, group policy, compliance)
has its own producer. They share id/name handling, assignment checks
and setting lookup, and differ only in how settings are fetched.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from entrapolicy.graph.client import GraphError
from entrapolicy.graph.schemas import Assignment, PolicySettingEntry
from entrapolicy.policy.assignments import resolve_assignments
from entrapolicy.policy.settings import (
    ConfigurationPolicySetting,
    GroupPolicyDefinition,
    PolicySetting,
)

if TYPE_CHECKING:
    from entrapolicy.graph.client import GraphClient


logger = logging.getLogger(__name__)


class PolicySettingsNotLoadedError(Exception):
    """Settings were requested before load_settings() succeeded."""

    pass


@dataclass
class Policy(ABC):
    """
    Base policy.

    ``settings`` stays None until load_settings() succeeds. Once loaded
    the tuple is never modified; copies share it.
    """

    kind: ClassVar[str] = "policy"

    id: str
    name: str
    settings: tuple[PolicySetting, ...] | None = field(default=None, compare=False)

    @property
    def loaded(self) -> bool:
        """Check if settings have been loaded."""
        return self.settings is not None

    @classmethod
    @abstractmethod
    async def list_candidates(cls, graph: GraphClient) -> list[Policy]:
        """List every policy of this source (settings not loaded)."""
        raise NotImplementedError

    @abstractmethod
    async def list_assignments(self, graph: GraphClient) -> list[Assignment]:
        """Fetch this policy's assignment rules."""
        raise NotImplementedError

    @abstractmethod
    async def load_settings(self, graph: GraphClient) -> None:
        """Fetch and normalize this policy's settings."""
        raise NotImplementedError

    async def is_assigned(self, graph: GraphClient, principal_id: str) -> bool:
        """
        Check whether this policy applies to a principal.

        Args:
            graph: Directory service client
            principal_id: User or device object id

        Returns:
            True if the policy is assigned and the principal is not excluded
        """
        assignments = await self.list_assignments(graph)
        return await resolve_assignments(graph, principal_id, self.id, assignments)

    def list_settings(self, pattern: str | re.Pattern[str]) -> list[PolicySetting]:
        """
        Get loaded settings whose compare pattern matches.

        Args:
            pattern: Regex (string or compiled), searched anywhere in the
                setting's compare pattern

        Returns:
            Matching settings in load order

        Raises:
            PolicySettingsNotLoadedError: If settings were never loaded
        """
        if self.settings is None:
            raise PolicySettingsNotLoadedError(
                f"Policy definitions were not loaded for {self.kind} policy {self.id}"
            )
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return [
            setting for setting in self.settings
            if regex.search(setting.compare_pattern)
        ]

    def copy(self) -> Policy:
        """Return an independent policy sharing the same settings snapshot."""
        return type(self)(id=self.id, name=self.name, settings=self.settings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "settings": (
                [setting.to_dict() for setting in self.settings]
                if self.settings is not None
                else None
            ),
        }


def _wrap_entries(entries: list[PolicySettingEntry]) -> tuple[PolicySetting, ...]:
    return tuple(
        ConfigurationPolicySetting.from_instance(entry.setting_instance)
        for entry in entries
    )


@dataclass
class ConfigurationPolicy(Policy):
    """Settings-catalog configuration policy."""

    kind: ClassVar[str] = "configuration"

    @classmethod
    async def list_candidates(cls, graph: GraphClient) -> list[Policy]:
        return [
            cls(id=summary.id, name=summary.name)
            for summary in await graph.list_configuration_policies()
        ]

    async def list_assignments(self, graph: GraphClient) -> list[Assignment]:
        return await graph.list_configuration_policy_assignments(self.id)

    async def load_settings(self, graph: GraphClient) -> None:
        entries = await graph.list_configuration_policy_settings(self.id)
        self.settings = _wrap_entries(entries)
        logger.debug("Configuration policy %s: %d settings", self.id, len(self.settings))


@dataclass
class CompliancePolicy(Policy):
    """Compliance policy; settings share the configuration policy shape."""

    kind: ClassVar[str] = "compliance"

    @classmethod
    async def list_candidates(cls, graph: GraphClient) -> list[Policy]:
        return [
            cls(id=summary.id, name=summary.name)
            for summary in await graph.list_compliance_policies()
        ]

    async def list_assignments(self, graph: GraphClient) -> list[Assignment]:
        return await graph.list_compliance_policy_assignments(self.id)

    async def load_settings(self, graph: GraphClient) -> None:
        entries = await graph.list_compliance_policy_settings(self.id)
        self.settings = _wrap_entries(entries)
        logger.debug("Compliance policy %s: %d settings", self.id, len(self.settings))


@dataclass
class GroupPolicy(Policy):
    """
    Group policy configuration (administrative templates).

    Each definition value needs two more round trips: its definition and
    its presentation value. A failure on the presentation value drops
    that one definition; any other failure aborts the load.
    """

    kind: ClassVar[str] = "group"

    @classmethod
    async def list_candidates(cls, graph: GraphClient) -> list[Policy]:
        return [
            cls(id=summary.id, name=summary.display_name)
            for summary in await graph.list_group_policies()
        ]

    async def list_assignments(self, graph: GraphClient) -> list[Assignment]:
        return await graph.list_group_policy_assignments(self.id)

    async def load_settings(self, graph: GraphClient) -> None:
        settings: list[PolicySetting] = []

        for definition_value in await graph.list_definition_values(self.id):
            definition = await graph.get_definition(self.id, definition_value.id)
            try:
                presentation = await graph.get_presentation_value(
                    self.id, definition_value.id
                )
            except GraphError as e:
                logger.error(
                    "Failed fetching presentation value for %s: %s",
                    definition_value.id, e,
                )
                continue

            settings.append(
                GroupPolicyDefinition.from_parts(definition_value, definition, presentation)
            )

        self.settings = tuple(settings)
        logger.debug("Group policy %s: %d settings", self.id, len(self.settings))


# Evaluation order of the policy sources
POLICY_SOURCES: tuple[type[Policy], ...] = (
    ConfigurationPolicy,
    GroupPolicy,
    CompliancePolicy,
)
