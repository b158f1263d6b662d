#!/usr/bin/env python3
"""
Macron Agent - Remote Macro Execution Agent
===========================================

Connects to the macron server, keeps one websocket session open and runs
locally configured functions when the server asks for them.

Usage:
    python main.py                      # Run with $MACRON_CONFIG or ~/.config/macron/config.toml
    python main.py --config agent.yaml  # Run with an explicit config file
    python main.py --check              # Validate the config and list functions
    python main.py --help               # Show help

Exit codes:
    0   normal exit
    1   config, transport or protocol failure
    2   authentication rejected
    130 interrupted
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.agent import Agent
from core.errors import MacronError, exit_code_for
from infra.config import AgentConfig, load_config, resolve_config_path
from infra.logging import LOG_LEVEL_ENV_VAR, configure_logging


console = Console(stderr=True)


def print_banner(config: AgentConfig) -> None:
    """Print the startup banner."""
    strategy = "token login" if config.server.uses_token_login else "inline password"

    banner = Text()
    banner.append("macron", style="bold cyan")
    banner.append(" - remote macro agent\n", style="dim")
    banner.append(f"Server: {config.server.url}\n", style="green")
    banner.append(f"Auth: {strategy} | ", style="dim")
    banner.append(f"Functions: {len(config.functions)} | ", style="dim")
    banner.append(f"Lookup: {config.agent.lookup}", style="dim")

    console.print(Panel(banner, title="Starting", border_style="blue"))


def print_functions(config: AgentConfig) -> None:
    """Print the configured functions as a table."""
    table = Table(title=f"Functions ({config.source})")
    table.add_column("#", justify="right")
    table.add_column("id", justify="right")
    table.add_column("name", style="bold")
    table.add_column("description")
    table.add_column("command", style="dim")

    for position, func in enumerate(config.functions):
        table.add_row(str(position), str(func.id), func.name, func.description, func.command)

    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Macron Agent - run configured macros on request from the server"
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to configuration file (default: $MACRON_CONFIG or ~/.config/macron/config.toml)"
    )
    parser.add_argument(
        "--log-level", "-l",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: ${LOG_LEVEL_ENV_VAR} or INFO)"
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write JSON log lines to this file"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate the configuration, list the functions and exit"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    configure_logging(
        level=args.log_level or os.environ.get(LOG_LEVEL_ENV_VAR) or "INFO",
        log_file=args.log_file,
        console=console,
    )
    logger = logging.getLogger("macron.main")
    logger.info("Starting macron agent...")

    try:
        config_path = resolve_config_path(args.config)
        logger.info(f"Config file: {config_path}")
        config = load_config(config_path)

        if args.check:
            print_functions(config)
            return 0

        print_banner(config)
        asyncio.run(Agent(config).run())
        return 0

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130
    except MacronError as e:
        logger.error(f"{e.category.name}: {e.message}")
        return exit_code_for(e)
    except Exception:
        logger.exception("Fatal error")
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
