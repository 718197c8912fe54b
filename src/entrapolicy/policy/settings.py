"""
Policy settings.

Normalizes the setting shapes of the three policy sources into one
interface that enforcement handlers can consume without knowing where a
setting came from.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Any, Protocol, runtime_checkable

from entrapolicy.graph.schemas import (
    DefinitionValue,
    GroupPolicyDefinitionInfo,
    PresentationValue,
    SettingInstance,
)
from entrapolicy.values import Collection, Value, parse_input_value


logger = logging.getLogger(__name__)

SIMPLE_SETTING_INSTANCE = "#microsoft.graph.deviceManagementConfigurationSimpleSettingInstance"
CHOICE_SETTING_INSTANCE = "#microsoft.graph.deviceManagementConfigurationChoiceSettingInstance"
GROUP_COLLECTION_INSTANCE = (
    "#microsoft.graph.deviceManagementConfigurationGroupSettingCollectionInstance"
)

_USER_PREFIX = re.compile(r"^user_")
_DEVICE_PREFIX = re.compile(r"^device_")


class PolicyType(Enum):
    """Whether a setting targets users or devices."""

    USER = "user"
    DEVICE = "device"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


@runtime_checkable
class PolicySetting(Protocol):
    """Interface shared by every setting producer."""

    @property
    def enabled(self) -> bool:
        """Whether this definition is switched on."""
        ...

    @property
    def class_type(self) -> PolicyType:
        ...

    @property
    def key(self) -> str:
        """Stable identifier handlers use to recognize the setting."""
        ...

    @property
    def value(self) -> Value | None:
        ...

    @property
    def compare_pattern(self) -> str:
        """String matched by list_settings() patterns."""
        ...

    def to_dict(self) -> dict[str, Any]:
        ...


def setting_to_dict(setting: PolicySetting) -> dict[str, Any]:
    """Serialize any setting to a JSON-compatible dictionary."""
    value = setting.value
    return {
        "enabled": setting.enabled,
        "class": str(setting.class_type),
        "key": setting.key,
        "compare_pattern": setting.compare_pattern,
        "value": value.to_dict() if value is not None else None,
    }


@dataclass(frozen=True)
class ConfigurationPolicySetting:
    """
    Setting of a configuration or compliance policy.

    These policies have no per-setting toggle, so ``enabled`` is always
    True. The user/device class comes from the setting definition id
    prefix.
    """

    # Wraps pydantic models, which are unhashable
    __hash__ = None  # type: ignore[assignment]

    instance: SettingInstance

    @classmethod
    def from_instance(cls, instance: SettingInstance) -> ConfigurationPolicySetting:
        return cls(instance=instance)

    @property
    def enabled(self) -> bool:
        return True

    @property
    def class_type(self) -> PolicyType:
        definition_id = self.instance.setting_definition_id
        if _USER_PREFIX.match(definition_id):
            return PolicyType.USER
        if _DEVICE_PREFIX.match(definition_id):
            return PolicyType.DEVICE
        return PolicyType.UNKNOWN

    @property
    def key(self) -> str:
        return self.instance.setting_definition_id

    @property
    def compare_pattern(self) -> str:
        return self.instance.setting_definition_id

    @cached_property
    def value(self) -> Value | None:
        instance = self.instance
        kind = instance.odata_type

        if kind == SIMPLE_SETTING_INSTANCE:
            if instance.simple_value is None:
                return None
            return parse_input_value(instance.simple_value.value)

        if kind == CHOICE_SETTING_INSTANCE:
            if instance.choice_value is None:
                return None
            prefix = f"{instance.setting_definition_id}_"
            selected = instance.choice_value.value
            if not selected.startswith(prefix):
                return None
            return parse_input_value(selected[len(prefix):])

        if kind == GROUP_COLLECTION_INSTANCE:
            if instance.group_value is None:
                return None
            return Collection(
                tuple(
                    ConfigurationPolicySetting.from_instance(child)
                    for sub_collection in instance.group_value
                    for child in sub_collection.children
                )
            )

        logger.error(
            "Unrecognized device management configuration setting instance: %s",
            kind,
        )
        return None

    def to_dict(self) -> dict[str, Any]:
        return setting_to_dict(self)


@dataclass(frozen=True)
class GroupPolicyDefinition:
    """
    Setting of a group policy configuration.

    Merges a definition value (enabled flag), its definition (class,
    display name, category) and its single presentation value.
    """

    # Wraps pydantic models, which are unhashable
    __hash__ = None  # type: ignore[assignment]

    enabled: bool
    class_name: str
    display_name: str
    category_path: str
    presentation: PresentationValue

    @classmethod
    def from_parts(
        cls,
        definition_value: DefinitionValue,
        definition: GroupPolicyDefinitionInfo,
        presentation: PresentationValue,
    ) -> GroupPolicyDefinition:
        return cls(
            enabled=definition_value.enabled,
            class_name=definition.class_type,
            display_name=definition.display_name,
            category_path=definition.category_path,
            presentation=presentation,
        )

    @property
    def class_type(self) -> PolicyType:
        if self.class_name == "user":
            return PolicyType.USER
        if self.class_name == "device":
            return PolicyType.DEVICE
        return PolicyType.UNKNOWN

    @property
    def key(self) -> str:
        return self.display_name

    @property
    def compare_pattern(self) -> str:
        return self.category_path

    @property
    def value(self) -> Value | None:
        if self.presentation.value is not None:
            return self.presentation.value
        return self.presentation.values

    def to_dict(self) -> dict[str, Any]:
        return setting_to_dict(self)
