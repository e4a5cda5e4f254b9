"""Command-line interface for tabauth configuration checks."""

from __future__ import annotations

import argparse
import os
import sys

from pathlib import Path
from typing import TYPE_CHECKING

from .config import _REDACTED, _SENSITIVE_FIELDS
from .log import get_logger


if TYPE_CHECKING:
    from .config import TabAuthSettings


def main(argv: list[str] | None = None) -> int:
    """Run the main CLI entry point.

    Parameters
    ----------
    argv : list[str], optional
        Arguments to parse (default: ``sys.argv[1:]``).

    Returns
    -------
    int
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="tabauth",
        description="tabauth OpenID Connect client configuration tools",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    config_parser = subparsers.add_parser(
        "config",
        help="Show or export configuration",
    )
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )
    config_group.add_argument(
        "--toml",
        action="store_true",
        help="Export configuration as TOML",
    )
    config_group.add_argument(
        "--env",
        action="store_true",
        help="Export configuration as environment variables",
    )
    config_group.add_argument(
        "--sources",
        action="store_true",
        help="Show configuration file sources",
    )
    config_parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output file path (default: stdout)",
    )

    subparsers.add_parser(
        "endpoints",
        help="Show the provider endpoints resolved from the configuration",
    )

    args = parser.parse_args(argv)

    if args.command:
        get_logger()

    if args.command == "config":
        return handle_config(args)
    if args.command == "endpoints":
        return handle_endpoints()
    parser.print_help()
    return 0


def handle_config(args: argparse.Namespace) -> int:
    """Handle the config command.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command line arguments.

    Returns
    -------
    int
        Exit code.
    """
    from .config import TabAuthSettings

    if args.sources:
        return show_config_sources()

    settings = TabAuthSettings()

    if args.toml:
        output = settings.to_toml()
    elif args.env:
        output = settings.to_env()
    else:
        output = format_config_show(settings)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"Configuration written to {args.output}")
    else:
        print(output)

    return 0


def handle_endpoints() -> int:
    """Print the resolved provider endpoints.

    Returns
    -------
    int
        Exit code (1 when the configuration cannot be resolved).
    """
    from .config import TabAuthSettings
    from .exceptions import ConfigurationError
    from .oidc import resolve_endpoints

    settings = TabAuthSettings()
    try:
        endpoints = resolve_endpoints(settings.auth)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    print(f"{'authorize':<12} {endpoints.authorize}")
    print(f"{'token':<12} {endpoints.token}")
    print(f"{'userinfo':<12} {endpoints.userinfo}")
    print(f"{'end_session':<12} {endpoints.end_session or '(not configured)'}")
    return 0


def show_config_sources() -> int:
    """Show configuration file sources and their status.

    Returns
    -------
    int
        Exit code.
    """
    sources = [
        ("Built-in defaults", "", True),
        ("pyproject.toml [tool.tabauth]", "pyproject.toml", None),
        ("./tabauth.toml", "tabauth.toml", None),
        (
            "~/.config/tabauth/config.toml",
            str(Path.home() / ".config" / "tabauth" / "config.toml"),
            None,
        ),
        ("Environment variables", "TABAUTH_* vars", None),
    ]

    print("Configuration Sources (in order of precedence):\n")
    print(f"{'Source':<40} {'Status':<15} {'Path'}")
    print("-" * 80)

    for name, path_str, forced_status in sources:
        if forced_status is True:
            status = "Active"
            path_display = ""
        elif name == "Environment variables":
            env_vars = [k for k in os.environ if k.startswith("TABAUTH_")]
            if env_vars:
                status = f"{len(env_vars)} vars"
                path_display = ", ".join(env_vars[:3])
                if len(env_vars) > 3:
                    path_display += "..."
            else:
                status = "No vars"
                path_display = ""
        else:
            path = Path(path_str).expanduser()
            status = "Found" if path.exists() else "Not found"
            path_display = str(path)

        print(f"{name:<40} {status:<15} {path_display}")

    print("\nNote: Later sources override earlier ones.")
    return 0


def format_config_show(settings: TabAuthSettings) -> str:
    """Format configuration for display.

    Parameters
    ----------
    settings : TabAuthSettings
        The settings object to format.

    Returns
    -------
    str
        Formatted configuration string.
    """
    lines = ["tabauth Configuration\n" + "=" * 40 + "\n"]

    for section_name, section in (("auth", settings.auth), ("log", settings.log)):
        if lines[-1] != "":
            lines.append("")
        lines.append(f"[{section_name}]")
        for field, value in section.model_dump(exclude=_SENSITIVE_FIELDS).items():
            lines.append(f"  {field} = {value!r}")
        lines.extend(
            f"  {rn} = '{_REDACTED}'"
            for rn in sorted(_SENSITIVE_FIELDS & type(section).model_fields.keys())
        )

    return "\n".join(lines)


if __name__ == "__main__":
    sys.exit(main())
