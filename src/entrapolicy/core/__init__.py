"""
Policy resolution pipeline.

Lists candidate policies, filters them by assignment, loads settings
and dispatches the result to enforcement handlers.
"""

from entrapolicy.core.processor import (
    apply_group_policy,
    dispatch_policies,
    get_gpo_list,
    resolve_policies,
)

__all__ = [
    "apply_group_policy",
    "dispatch_policies",
    "get_gpo_list",
    "resolve_policies",
]
