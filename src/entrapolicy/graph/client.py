"""
Directory service REST client.

One coroutine per endpoint consumed by the policy engine. Every call
issues exactly one request, checks the status and validates the body
against its envelope schema.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from entrapolicy.graph.schemas import (
    Assignment,
    AssignmentList,
    DefinitionValue,
    DefinitionValueList,
    GroupPolicyDefinitionInfo,
    GroupPolicyList,
    GroupPolicySummary,
    MemberGroupsRequest,
    MemberGroupsResponse,
    PolicyList,
    PolicySettingEntry,
    PolicySettingList,
    PolicySummary,
    PresentationValue,
    PresentationValueList,
)


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEVICE_MANAGEMENT = "/beta/deviceManagement"
CONFIGURATION_POLICIES = f"{DEVICE_MANAGEMENT}/configurationPolicies"
COMPLIANCE_POLICIES = f"{DEVICE_MANAGEMENT}/compliancePolicies"
GROUP_POLICY_CONFIGURATIONS = f"{DEVICE_MANAGEMENT}/groupPolicyConfigurations"

LINUX_POLICY_FILTER = "(platforms eq 'linux') and (technologies has 'linuxMdm')"

DEFAULT_TIMEOUT = 30.0


class GraphError(Exception):
    """Error talking to the directory service."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


class GraphRequestError(GraphError):
    """Request could not be completed (network or protocol failure)."""

    pass


class GraphStatusError(GraphError):
    """Directory service answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"HTTP {status_code}", url)
        self.status_code = status_code


class GraphResponseError(GraphError):
    """Response body was not valid JSON or did not match its schema."""

    pass


class GraphClient:
    """
    Bearer-authenticated client bound to one directory service endpoint.

    Calls are issued one at a time; no retries are performed here.
    Use as an async context manager so the underlying connection pool is
    closed afterwards.
    """

    def __init__(
        self,
        graph_url: str,
        access_token: str,
        timeout: float = DEFAULT_TIMEOUT,
        cache_membership: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            graph_url: Base URL of the directory service
            access_token: Already-valid bearer token
            timeout: Transport timeout in seconds
            cache_membership: Memoize membership checks for the client's lifetime
            transport: Optional httpx transport (used by tests)
        """
        self.graph_url = graph_url.rstrip("/")
        self._http = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            transport=transport,
        )
        self._membership_cache: dict[tuple[str, str], bool] | None = (
            {} if cache_membership else None
        )

    async def __aenter__(self) -> GraphClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        url = f"{self.graph_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            resp = await self._http.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            raise GraphRequestError(f"{method} failed: {e}", url) from e

        if not resp.is_success:
            logger.debug("%s %s returned %d", method, url, resp.status_code)
            raise GraphStatusError(resp.status_code, url)

        try:
            return resp.json()
        except ValueError as e:
            raise GraphResponseError("Invalid JSON in response", url) from e

    async def _get(
        self,
        path: str,
        model: type[ModelT],
        params: dict[str, str] | None = None,
    ) -> ModelT:
        data = await self._request("GET", path, params=params)
        return self._validate(model, data, path)

    def _validate(self, model: type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise GraphResponseError(
                f"Unexpected {model.__name__} response: {e.error_count()} error(s)",
                f"{self.graph_url}{path}",
            ) from e

    # -------------------------------------------------------------------------
    # Configuration policies
    # -------------------------------------------------------------------------

    async def list_configuration_policies(self) -> list[PolicySummary]:
        """List Linux configuration policies (id and name only)."""
        envelope = await self._get(
            CONFIGURATION_POLICIES,
            PolicyList,
            params={"$select": "name,id", "$filter": LINUX_POLICY_FILTER},
        )
        return envelope.value

    async def list_configuration_policy_assignments(self, policy_id: str) -> list[Assignment]:
        envelope = await self._get(
            f"{CONFIGURATION_POLICIES}/{policy_id}/assignments", AssignmentList
        )
        return envelope.value

    async def list_configuration_policy_settings(
        self, policy_id: str
    ) -> list[PolicySettingEntry]:
        envelope = await self._get(
            f"{CONFIGURATION_POLICIES}/{policy_id}/settings", PolicySettingList
        )
        return envelope.value

    # -------------------------------------------------------------------------
    # Compliance policies
    # -------------------------------------------------------------------------

    async def list_compliance_policies(self) -> list[PolicySummary]:
        """List Linux compliance policies (id and name only)."""
        envelope = await self._get(
            COMPLIANCE_POLICIES,
            PolicyList,
            params={"$select": "name,id", "$filter": LINUX_POLICY_FILTER},
        )
        return envelope.value

    async def list_compliance_policy_assignments(self, policy_id: str) -> list[Assignment]:
        envelope = await self._get(
            f"{COMPLIANCE_POLICIES}/{policy_id}/assignments", AssignmentList
        )
        return envelope.value

    async def list_compliance_policy_settings(self, policy_id: str) -> list[PolicySettingEntry]:
        envelope = await self._get(
            f"{COMPLIANCE_POLICIES}/{policy_id}/settings", PolicySettingList
        )
        return envelope.value

    # -------------------------------------------------------------------------
    # Group policy configurations
    # -------------------------------------------------------------------------

    async def list_group_policies(self) -> list[GroupPolicySummary]:
        """List group policy configurations (id and display name only)."""
        envelope = await self._get(
            GROUP_POLICY_CONFIGURATIONS,
            GroupPolicyList,
            params={"$select": "displayName,id"},
        )
        return envelope.value

    async def list_group_policy_assignments(self, policy_id: str) -> list[Assignment]:
        envelope = await self._get(
            f"{GROUP_POLICY_CONFIGURATIONS}/{policy_id}/assignments", AssignmentList
        )
        return envelope.value

    async def list_definition_values(self, policy_id: str) -> list[DefinitionValue]:
        """List the definition values (id + enabled flag) of a group policy."""
        envelope = await self._get(
            f"{GROUP_POLICY_CONFIGURATIONS}/{policy_id}/definitionValues",
            DefinitionValueList,
        )
        return envelope.value

    async def get_definition(
        self, policy_id: str, definition_value_id: str
    ) -> GroupPolicyDefinitionInfo:
        return await self._get(
            f"{GROUP_POLICY_CONFIGURATIONS}/{policy_id}"
            f"/definitionValues/{definition_value_id}/definition",
            GroupPolicyDefinitionInfo,
        )

    async def get_presentation_value(
        self, policy_id: str, definition_value_id: str
    ) -> PresentationValue:
        """
        Fetch the single presentation value of a definition value.

        Raises:
            GraphResponseError: If the response does not hold exactly one value
        """
        path = (
            f"{GROUP_POLICY_CONFIGURATIONS}/{policy_id}"
            f"/definitionValues/{definition_value_id}/presentationValues"
        )
        envelope = await self._get(path, PresentationValueList)
        if envelope.value is None:
            raise GraphResponseError("No values were returned", f"{self.graph_url}{path}")
        if len(envelope.value) != 1:
            raise GraphResponseError(
                f"Expected exactly one presentation value, got {len(envelope.value)}",
                f"{self.graph_url}{path}",
            )
        return envelope.value[0]

    # -------------------------------------------------------------------------
    # Directory objects
    # -------------------------------------------------------------------------

    async def is_member_of_group(self, principal_id: str, group_id: str) -> bool:
        """
        Check whether a principal is a (transitive) member of a group.

        Args:
            principal_id: User or device object id
            group_id: Group object id

        Returns:
            True if the group id is echoed back by checkMemberGroups
        """
        cache_key = (principal_id, group_id)
        if self._membership_cache is not None and cache_key in self._membership_cache:
            return self._membership_cache[cache_key]

        path = f"/v1.0/directoryObjects/{principal_id}/checkMemberGroups"
        body = MemberGroupsRequest(group_ids=[group_id]).model_dump(by_alias=True)
        data = await self._request("POST", path, json=body)
        member = group_id in self._validate(MemberGroupsResponse, data, path).value

        if self._membership_cache is not None:
            self._membership_cache[cache_key] = member
        return member
