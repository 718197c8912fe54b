"""
Policy resolution pipeline.

Ties together the directory client, assignment resolution, settings
loading and enforcement handler dispatch.
"""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from entrapolicy.config import PolicyConfig, resolve_graph_url
from entrapolicy.extensions import ClientSideExtension, build_extensions
from entrapolicy.graph.client import DEFAULT_TIMEOUT, GraphClient
from entrapolicy.policy.models import POLICY_SOURCES, Policy


logger = logging.getLogger(__name__)


async def resolve_policies(graph: GraphClient, principal_id: str) -> list[Policy]:
    """
    Resolve the policies assigned to a principal, settings loaded.

    Sources are processed in order: configuration, group, compliance.
    Within a source, listing order is kept. Settings are only fetched
    for policies whose assignment check passed.

    Args:
        graph: Directory service client
        principal_id: User or device object id

    Returns:
        Assigned policies with settings loaded

    Raises:
        GraphError: If a listing, assignment or settings call fails
    """
    resolved: list[Policy] = []

    for source in POLICY_SOURCES:
        candidates = await source.list_candidates(graph)
        logger.debug("%d %s policy candidates", len(candidates), source.kind)

        for policy in candidates:
            if not await policy.is_assigned(graph, principal_id):
                logger.debug("Skipping unassigned %s policy %s", source.kind, policy.id)
                continue
            await policy.load_settings(graph)
            logger.info("Applying %s policy %s (%s)", source.kind, policy.name, policy.id)
            resolved.append(policy)

    return resolved


async def get_gpo_list(
    graph_url: str,
    access_token: str,
    principal_id: str,
    timeout: float = DEFAULT_TIMEOUT,
    cache_membership: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Policy]:
    """
    Get the full list of policies for a user or device.

    Args:
        graph_url: Directory service endpoint
        access_token: Already-valid bearer token
        principal_id: User or device object id to list policies for
        timeout: Transport timeout in seconds
        cache_membership: Memoize group membership checks for this call
        transport: Optional httpx transport (used by tests)

    Returns:
        Assigned policies, settings loaded
    """
    async with GraphClient(
        graph_url,
        access_token,
        timeout=timeout,
        cache_membership=cache_membership,
        transport=transport,
    ) as graph:
        return await resolve_policies(graph, principal_id)


async def dispatch_policies(
    extensions: Sequence[ClientSideExtension],
    policies: Sequence[Policy],
) -> None:
    """
    Hand the resolved policies to each enforcement handler in turn.

    Every handler gets its own list of policy copies. A handler failure
    propagates and the remaining handlers are not run.
    """
    for extension in extensions:
        logger.debug("Running extension %s", type(extension).__name__)
        await extension.process_group_policy([policy.copy() for policy in policies])


async def apply_group_policy(
    config: PolicyConfig,
    access_token: str,
    account_id: str,
    principal_id: str,
    extensions: Sequence[ClientSideExtension] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """
    Resolve and enforce the policies for an account.

    Args:
        config: Engine configuration (endpoint lookup, handlers)
        access_token: Already-valid bearer token
        account_id: Account in ``user@domain`` form
        principal_id: User or device object id to resolve policies for
        extensions: Handlers to run instead of the configured ones
        transport: Optional httpx transport (used by tests)

    Returns:
        True once every handler has run

    Raises:
        DomainResolutionError: If no endpoint is known for the account
        GraphError: If resolution fails
        ConfigError: If a configured handler is not registered
    """
    graph_url = resolve_graph_url(config, account_id)
    if extensions is None:
        extensions = build_extensions(config, account_id)

    policies = await get_gpo_list(
        graph_url,
        access_token,
        principal_id,
        timeout=config.graph.timeout,
        cache_membership=config.graph.cache_membership,
        transport=transport,
    )
    logger.info("Resolved %d policies for %s", len(policies), account_id)

    await dispatch_policies(extensions, policies)
    return True
