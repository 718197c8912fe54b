"""
Policy model.

Policies, their settings and setting values, plus assignment resolution.
"""

from entrapolicy.policy.assignments import AssignmentTargetType, resolve_assignments
from entrapolicy.policy.models import (
    POLICY_SOURCES,
    CompliancePolicy,
    ConfigurationPolicy,
    GroupPolicy,
    Policy,
    PolicySettingsNotLoadedError,
)
from entrapolicy.policy.settings import (
    ConfigurationPolicySetting,
    GroupPolicyDefinition,
    PolicySetting,
    PolicyType,
)
from entrapolicy.values import (
    Boolean,
    Collection,
    Decimal,
    ListEntry,
    ListValue,
    MultiText,
    Text,
    Value,
    parse_input_value,
    value_from_json,
)

__all__ = [
    # Assignments
    "AssignmentTargetType",
    "resolve_assignments",
    # Policies
    "POLICY_SOURCES",
    "CompliancePolicy",
    "ConfigurationPolicy",
    "GroupPolicy",
    "Policy",
    "PolicySettingsNotLoadedError",
    # Settings
    "ConfigurationPolicySetting",
    "GroupPolicyDefinition",
    "PolicySetting",
    "PolicyType",
    # Values
    "Boolean",
    "Collection",
    "Decimal",
    "ListEntry",
    "ListValue",
    "MultiText",
    "Text",
    "Value",
    "parse_input_value",
    "value_from_json",
]
