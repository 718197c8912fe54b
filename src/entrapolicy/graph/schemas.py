"""
Pydantic schemas for directory service responses.

Only the fields the policy engine consumes are declared; anything else
in a response body is ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from entrapolicy.values import Value, value_from_json


class GraphModel(BaseModel):
    """Base schema: camelCase aliases, unknown fields ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# =============================================================================
# Policy listings
# =============================================================================


class PolicySummary(GraphModel):
    """Configuration or compliance policy as returned by a listing."""

    id: str
    name: str


class PolicyList(GraphModel):
    value: list[PolicySummary]


class GroupPolicySummary(GraphModel):
    """Group policy configuration as returned by a listing."""

    id: str
    display_name: str = Field(alias="displayName")


class GroupPolicyList(GraphModel):
    value: list[GroupPolicySummary]


# =============================================================================
# Assignments
# =============================================================================


class AssignmentTarget(GraphModel):
    """Target of a single assignment rule."""

    odata_type: str = Field(alias="@odata.type")
    filter_id: str | None = Field(None, alias="deviceAndAppManagementAssignmentFilterId")
    group_id: str | None = Field(None, alias="groupId")


class Assignment(GraphModel):
    target: AssignmentTarget


class AssignmentList(GraphModel):
    value: list[Assignment]


class MemberGroupsRequest(GraphModel):
    group_ids: list[str] = Field(alias="groupIds")


class MemberGroupsResponse(GraphModel):
    value: list[str]


# =============================================================================
# Configuration / compliance settings
# =============================================================================


class SimpleSettingValue(GraphModel):
    value: str


class ChoiceSettingValue(GraphModel):
    value: str


class GroupSettingCollectionValue(GraphModel):
    children: list[SettingInstance] = Field(default_factory=list)


class SettingInstance(GraphModel):
    """A single setting instance, possibly holding nested instances."""

    odata_type: str = Field(alias="@odata.type")
    setting_definition_id: str = Field(alias="settingDefinitionId")
    simple_value: SimpleSettingValue | None = Field(None, alias="simpleSettingValue")
    choice_value: ChoiceSettingValue | None = Field(None, alias="choiceSettingValue")
    group_value: list[GroupSettingCollectionValue] | None = Field(
        None, alias="groupSettingCollectionValue"
    )


class PolicySettingEntry(GraphModel):
    setting_instance: SettingInstance = Field(alias="settingInstance")


class PolicySettingList(GraphModel):
    value: list[PolicySettingEntry]


GroupSettingCollectionValue.model_rebuild()


# =============================================================================
# Group policy definitions
# =============================================================================


class DefinitionValue(GraphModel):
    """Definition value of a group policy configuration."""

    id: str
    enabled: bool


class DefinitionValueList(GraphModel):
    value: list[DefinitionValue]


class GroupPolicyDefinitionInfo(GraphModel):
    """Definition metadata behind a definition value."""

    class_type: str = Field(alias="classType")
    display_name: str = Field(alias="displayName")
    category_path: str = Field(alias="categoryPath")


class PresentationValue(GraphModel):
    """
    Presentation value of a definition.

    Either ``value`` or ``values`` (list presentations) is populated;
    both are decoded into the value model on validation.
    """

    # Holds decoded Value instances
    value: Any = None
    values: Any = None

    @field_validator("value", "values", mode="before")
    @classmethod
    def decode_value(cls, v: Any) -> Value | None:
        """Decode raw JSON into a Value."""
        if v is None:
            return None
        return value_from_json(v)


class PresentationValueList(GraphModel):
    value: list[PresentationValue] | None = None
