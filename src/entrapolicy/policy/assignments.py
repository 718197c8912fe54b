"""
Assignment resolution.

Decides whether a policy applies to a principal from the policy's
assignment rules. Rules are evaluated in order; include and exclude
outcomes are accumulated and combined at the end.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Sequence

from entrapolicy.graph.schemas import Assignment

if TYPE_CHECKING:
    from entrapolicy.graph.client import GraphClient


logger = logging.getLogger(__name__)


class AssignmentTargetType(str, Enum):
    """Recognized assignment target ``@odata.type`` values."""

    ALL_LICENSED_USERS = "#microsoft.graph.allLicensedUsersAssignmentTarget"
    ALL_DEVICES = "#microsoft.graph.allDevicesAssignmentTarget"
    GROUP = "#microsoft.graph.groupAssignmentTarget"
    EXCLUSION_GROUP = "#microsoft.graph.exclusionGroupAssignmentTarget"

    @classmethod
    def from_odata_type(cls, odata_type: str) -> AssignmentTargetType | None:
        """Map an ``@odata.type`` string to a target type, None if unknown."""
        try:
            return cls(odata_type)
        except ValueError:
            return None


async def resolve_assignments(
    graph: GraphClient,
    principal_id: str,
    policy_id: str,
    assignments: Sequence[Assignment],
) -> bool:
    """
    Decide whether a policy is assigned to a principal.

    Any rule carrying an assignment filter rejects the whole policy, since
    filters are not supported. Otherwise the policy applies when at least
    one inclusion rule matches and no exclusion rule matches.

    Args:
        graph: Client used for group membership lookups
        principal_id: User or device object id being evaluated
        policy_id: Policy id (for log messages)
        assignments: Assignment rules in listing order

    Returns:
        True if the policy applies to the principal

    Raises:
        GraphError: If a membership lookup fails
    """
    assigned = False
    excluded = False

    for assignment in assignments:
        target = assignment.target
        if target.filter_id:
            logger.error(
                "Assignment filters are not supported, policy %s will be disabled",
                policy_id,
            )
            return False

        target_type = AssignmentTargetType.from_odata_type(target.odata_type)

        if target_type in (
            AssignmentTargetType.ALL_LICENSED_USERS,
            AssignmentTargetType.ALL_DEVICES,
        ):
            assigned = True

        elif target_type in (
            AssignmentTargetType.GROUP,
            AssignmentTargetType.EXCLUSION_GROUP,
        ):
            if not target.group_id:
                logger.error(
                    "Policy %s: %s missing group id", policy_id, target.odata_type
                )
                continue
            if await graph.is_member_of_group(principal_id, target.group_id):
                if target_type is AssignmentTargetType.GROUP:
                    assigned = True
                else:
                    excluded = True

        else:
            logger.error(
                'Policy %s: unrecognized rule target "%s"', policy_id, target.odata_type
            )

    logger.debug(
        "Policy %s: assigned=%s excluded=%s", policy_id, assigned, excluded
    )
    return assigned and not excluded
