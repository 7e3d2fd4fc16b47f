#!/usr/bin/env python3
"""Command-line interface for treerights.

This module provides the CLI for normalizing ownership and modes of a tree:
- Argument parsing and validation
- Role declarations from the command line
- Layered configuration loading (system file, --config, environment, CLI)
- Logging setup
- Help and version information

Example:
    >>> from treerights.cli import parse_arguments
    >>> args = parse_arguments(['--role', 'web=www-data,644', '--rules', 'rules.txt', '/srv/app'])
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from treerights.core.constants import (
    STDIN_SOURCE,
    SYSTEM_CONFIG_PATH,
    TREERIGHTS_VERSION,
    ConfigKey,
)
from treerights.core.validators import ValidationError, validate_config
from treerights.infrastructure.config_manager import ConfigError, ConfigManager, ConfigSource
from treerights.infrastructure.logger import Logger, set_global_logger

# Version information
VERSION = TREERIGHTS_VERSION
DESCRIPTION = "treerights - assign ownership and modes to a tree from path rules"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If arguments are inconsistent
    """
    parser = argparse.ArgumentParser(
        prog="treerights",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Rule file format (one rule per line, '#' starts a comment):
  <pattern> [<role>|-]

  Patterns follow gitignore syntax without negation. A trailing '/' makes
  the rule apply to directories only, a leading '/' anchors it at the tree
  root. The first matching rule wins; '-' matches and does nothing.

Role spec format:
  user[:group],MODES   with MODES one of FFF, DDD/FFF, DDD/ or /FFF

Examples:
  # Normalize a deployment with rules from a file
  treerights --role web=www-data,644 --role conf=root:www-data,750/640 \\
      --rules deploy.rules /srv/app

  # Roles and rules file from a configuration file, rules on stdin
  treerights --config treerights.yaml --rules - /srv/app < deploy.rules

  # Only validate roles and rules
  treerights --config treerights.yaml --check
        """,
    )

    # Version
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )

    # Tree root
    parser.add_argument(
        "root",
        metavar="ROOT",
        nargs="?",
        help="Root directory of the tree to normalize",
    )

    # Configuration file
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Configuration file path (YAML format)",
    )

    # Rule options
    rule_group = parser.add_argument_group("rule options")

    rule_group.add_argument(
        "-r",
        "--role",
        metavar="NAME=SPEC",
        action="append",
        dest="roles",
        help="Declare a role as user[:group],MODES (can be specified multiple times)",
    )

    rule_group.add_argument(
        "-f",
        "--rules",
        metavar="FILE",
        type=str,
        help="Rules file, '-' for standard input (default: standard input)",
    )

    # Run options
    run_group = parser.add_argument_group("run options")

    run_group.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Report changes without applying them",
    )

    run_group.add_argument(
        "--check",
        action="store_true",
        help="Validate roles and rules, then exit without walking",
    )

    # Logging options
    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--verbose",
        action="store_true",
        help="Log the rule decision for every entry",
    )

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write diagnostics to this file",
    )

    parsed = parser.parse_args(args)

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments namespace

    Raises:
        CLIError: If validation fails
    """
    if not args.root and not args.check:
        raise CLIError("A tree ROOT is required unless --check is given\nUse --help for usage information")

    if args.root:
        root_path = Path(args.root)

        if not root_path.exists():
            raise CLIError(f"Tree root does not exist: {args.root}")

        if not root_path.is_dir():
            raise CLIError(f"Tree root is not a directory: {args.root}")

    if args.config:
        config_path = Path(args.config)

        if not config_path.exists():
            raise CLIError(f"Configuration file does not exist: {args.config}")

        if not config_path.is_file():
            raise CLIError(f"Configuration path is not a file: {args.config}")

    if args.rules and args.rules != STDIN_SOURCE:
        if not Path(args.rules).is_file():
            raise CLIError(f"Rules file does not exist: {args.rules}")

    # Fails early on NAME=SPEC syntax
    parse_role_options(args.roles or [])


def parse_role_options(options: List[str]) -> Dict[str, str]:
    """
    Parse repeated --role NAME=SPEC options.

    Args:
        options: Raw option values

    Returns:
        Mapping of role name to spec, later options win

    Raises:
        CLIError: If an option has no '='
    """
    roles = {}
    for option in options:
        name, sep, spec = option.partition("=")
        if not sep or not name.strip():
            raise CLIError(f"Role must be given as NAME=SPEC: {option}")
        roles[name.strip()] = spec.strip()
    return roles


def build_config_from_args(args: argparse.Namespace) -> Dict:
    """
    Build configuration dictionary from command-line arguments.

    Only options actually given are included, so that lower layers keep
    their values.

    Args:
        args: Parsed arguments namespace

    Returns:
        Configuration dictionary for the CLI_ARGS layer
    """
    section: Dict = {}

    roles = parse_role_options(args.roles or [])
    if roles:
        section[ConfigKey.ROLES] = roles

    if args.rules:
        section[ConfigKey.RULES_FILE] = args.rules

    if args.dry_run:
        section[ConfigKey.DRY_RUN] = True

    if args.verbose:
        section[ConfigKey.VERBOSE] = True

    logging_config = {}
    if args.debug:
        logging_config[ConfigKey.LOG_LEVEL] = "DEBUG"
    if args.log_file:
        logging_config[ConfigKey.LOG_FILE] = args.log_file
    if logging_config:
        section[ConfigKey.LOGGING] = logging_config

    return {ConfigKey.ROOT: section}


def load_config(args: argparse.Namespace, system_config: str = SYSTEM_CONFIG_PATH) -> Dict:
    """
    Load and merge configuration from all sources.

    Args:
        args: Parsed arguments namespace
        system_config: System-wide configuration file, loaded if present

    Returns:
        Merged and validated configuration dictionary

    Raises:
        ConfigError: If a configuration file cannot be loaded
        ValidationError: If the merged configuration is invalid
    """
    manager = ConfigManager(config_file=args.config)

    if system_config and os.path.isfile(system_config):
        manager.load_file(system_config, ConfigSource.SYSTEM_CONFIG)

    manager.load_dict(build_config_from_args(args), ConfigSource.CLI_ARGS)

    config = manager.get_all()
    validate_config(config)
    return config


def setup_logging(args: argparse.Namespace, config: Dict) -> Logger:
    """
    Setup logging based on arguments and configuration.

    Args:
        args: Parsed arguments namespace
        config: Configuration dictionary

    Returns:
        Configured logger instance
    """
    logging_config = config.get(ConfigKey.ROOT, {}).get(ConfigKey.LOGGING) or {}
    log_level = "DEBUG" if args.debug else logging_config.get(ConfigKey.LOG_LEVEL, "INFO")
    log_file = args.log_file or logging_config.get(ConfigKey.LOG_FILE)

    logger = Logger("treerights", level=log_level)

    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))
        logger.debug(f"Logging to file: {log_file}")

    return logger


def main():
    """
    Main CLI entry point.

    Handles argument parsing and configuration loading, then passes
    control to main.py for the actual run.
    """
    try:
        args = parse_arguments()

        config = load_config(args)

        logger = setup_logging(args, config)
        set_global_logger(logger)

        from treerights.main import run_treerights

        return run_treerights(args, config, logger)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except (ConfigError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return int(e.error_code)

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
