"""
Entra policy engine command line interface.

Provides commands for resolving and enforcing directory policies:
- resolve: Show the policies that apply to a principal
- apply: Resolve policies and run the enforcement handlers
- config: Validate configuration
- extensions: List registered enforcement handlers
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from entrapolicy import __version__
from entrapolicy.config import (
    DomainResolutionError,
    PolicyConfig,
    load_config,
    resolve_graph_url,
    validate_config,
)
from entrapolicy.core.processor import apply_group_policy, get_gpo_list
from entrapolicy.extensions import ConfigError, available_extensions
from entrapolicy.graph.client import GraphError


logger = logging.getLogger("entrapolicy")

TOKEN_ENV_VAR = "ENTRA_POLICY_TOKEN"


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="entra-policy",
        description="Resolve and enforce directory-managed Linux policies",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        metavar="FILE",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # resolve command
    resolve_parser = subparsers.add_parser(
        "resolve", help="Show policies assigned to a principal"
    )
    _add_principal_arguments(resolve_parser)
    resolve_parser.set_defaults(func=cmd_resolve)

    # apply command
    apply_parser = subparsers.add_parser(
        "apply", help="Resolve policies and run enforcement handlers"
    )
    _add_principal_arguments(apply_parser)
    apply_parser.set_defaults(func=cmd_apply)

    # config command
    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_sub = config_parser.add_subparsers(dest="config_cmd")
    config_sub.add_parser("validate", help="Validate configuration file")
    config_sub.add_parser("show", help="Show effective configuration")
    config_parser.set_defaults(func=cmd_config)

    # extensions command
    extensions_parser = subparsers.add_parser(
        "extensions", help="List registered enforcement handlers"
    )
    extensions_parser.set_defaults(func=cmd_extensions)

    # Parse arguments
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    # Load configuration
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        config.logging.level = "debug"
    setup_logging(config)

    # Execute command
    return args.func(args, config)


def _add_principal_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-a", "--account-id",
        required=True,
        help="Account in user@domain form",
    )
    parser.add_argument(
        "-p", "--principal-id",
        required=True,
        help="User or device object id to resolve policies for",
    )
    parser.add_argument(
        "-t", "--token-file",
        metavar="FILE",
        help=f"File holding the bearer token (default: ${TOKEN_ENV_VAR})",
    )


def setup_logging(config: PolicyConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.logging.level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if config.logging.file:
        handler = logging.FileHandler(config.logging.file)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        ))
        logging.getLogger().addHandler(handler)


def read_token(args: argparse.Namespace) -> str:
    """
    Read the bearer token from --token-file or the environment.

    Raises:
        ValueError: If no token is available
    """
    if args.token_file:
        token = Path(args.token_file).read_text().strip()
    else:
        token = os.environ.get(TOKEN_ENV_VAR, "").strip()
    if not token:
        raise ValueError(
            f"No access token: pass --token-file or set {TOKEN_ENV_VAR}"
        )
    return token


def output(data: Any, args: argparse.Namespace) -> None:
    """Output data in requested format."""
    if getattr(args, "json", False):
        print(json.dumps(data, indent=2, default=str))
    elif isinstance(data, dict):
        for key, value in data.items():
            print(f"{key}: {value}")
    elif isinstance(data, list):
        for item in data:
            print(f"  {item}")
    else:
        print(data)


def cmd_resolve(args: argparse.Namespace, config: PolicyConfig) -> int:
    """Resolve and print the policies assigned to a principal."""
    try:
        token = read_token(args)
        graph_url = resolve_graph_url(config, args.account_id)
        policies = asyncio.run(get_gpo_list(
            graph_url,
            token,
            args.principal_id,
            timeout=config.graph.timeout,
            cache_membership=config.graph.cache_membership,
        ))
    except (OSError, ValueError, DomainResolutionError, GraphError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if getattr(args, "json", False):
        output([policy.to_dict() for policy in policies], args)
        return 0

    print(f"Assigned Policies ({len(policies)} total)")
    print("=" * 70)
    if not policies:
        print("No policies assigned.")
    for policy in policies:
        settings = policy.settings or ()
        print(f"[{policy.kind}] {policy.name} ({policy.id})")
        for setting in settings:
            value = setting.value
            print(
                f"  {setting.key:<40} "
                f"{str(setting.class_type):<8} "
                f"{value.to_dict()['value'] if value is not None else '-'}"
            )
    return 0


def cmd_apply(args: argparse.Namespace, config: PolicyConfig) -> int:
    """Resolve policies and run the enforcement handlers."""
    try:
        token = read_token(args)
        asyncio.run(apply_group_policy(config, token, args.account_id, args.principal_id))
    except (OSError, ValueError, DomainResolutionError, GraphError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Enforcement failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Policies applied for {args.account_id}")
    return 0


def cmd_config(args: argparse.Namespace, config: PolicyConfig) -> int:
    """Validate or show configuration."""
    if args.config_cmd == "show":
        output({
            "logging.level": config.logging.level,
            "logging.file": config.logging.file,
            "graph.default_url": config.graph.default_url,
            "graph.timeout": config.graph.timeout,
            "graph.cache_membership": config.graph.cache_membership,
            "graph.domains": config.graph.domains,
            "extensions.enabled": config.extensions.enabled,
        }, args)
        return 0

    errors = validate_config(config)
    if errors:
        print("Configuration errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    print("Configuration is valid")
    return 0


def cmd_extensions(args: argparse.Namespace, config: PolicyConfig) -> int:
    """List registered enforcement handlers."""
    names = available_extensions()
    if getattr(args, "json", False):
        output(
            [{"name": name, "enabled": name in config.extensions.enabled} for name in names],
            args,
        )
        return 0

    if not names:
        print("No extensions registered.")
        return 0
    for name in names:
        marker = "*" if name in config.extensions.enabled else " "
        print(f" {marker} {name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
