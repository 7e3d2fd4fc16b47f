#!/usr/bin/env python3
"""Main entry point for treerights.

This module handles:
- Component initialization (RoleRegistry, RuleTable, TreeWalker)
- Reading the rule source (file or standard input)
- Reporting fatal configuration and rule errors
- Running the tree walk

Example:
    >>> from treerights.main import run_treerights
    >>> run_treerights(args, config, logger)
"""

import argparse
import sys
from typing import Dict, List, Optional

from treerights.core.constants import STDIN_SOURCE, ConfigKey, ErrorCode
from treerights.core.validators import ValidationError
from treerights.infrastructure.config_manager import ConfigError
from treerights.infrastructure.logger import Logger
from treerights.rules.engine import RuleTable, RuleTableError
from treerights.rules.roles import RoleRegistry
from treerights.tree.operations import PosixOperations
from treerights.tree.walker import TreeWalker, WalkError, WalkStats


def read_rule_lines(source: str) -> List[str]:
    """
    Read all lines of a rule source.

    Args:
        source: Rule file path, or "-" for standard input

    Returns:
        Lines of the rule source

    Raises:
        ConfigError: If the source cannot be opened or read
    """
    if source == STDIN_SOURCE:
        try:
            return sys.stdin.readlines()
        except OSError as e:
            raise ConfigError(f"Cannot read rules from standard input: {e}", ErrorCode.INVALID_INPUT)

    try:
        with open(source, "r", encoding="utf-8") as f:
            return f.readlines()
    except FileNotFoundError:
        raise ConfigError(f"Rules file not found: {source}", ErrorCode.NOT_FOUND)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read rules file {source}: {e}", ErrorCode.PERMISSION_DENIED)


class TreeRightsMain:
    """
    Main class for a treerights run.

    Builds the immutable role registry and rule table before any traversal,
    then walks the tree.
    """

    def __init__(self, args: argparse.Namespace, config: Dict, logger: Logger, resolver=None):
        """
        Initialize treerights main controller.

        Args:
            args: Parsed command-line arguments
            config: Merged configuration dictionary
            logger: Logger instance
            resolver: Identity resolver for role users and groups
        """
        self.args = args
        self.config_dict = config
        self.section = config.get(ConfigKey.ROOT, {})
        self.logger = logger
        self.resolver = resolver

        # Components
        self.registry: Optional[RoleRegistry] = None
        self.rule_table: Optional[RuleTable] = None
        self.walker: Optional[TreeWalker] = None

    def initialize_components(self) -> None:
        """
        Initialize all treerights components.

        Raises:
            ValidationError: If a role or rule is invalid
            ConfigError: If the rule source cannot be read
        """
        self.logger.debug("Creating RoleRegistry")
        roles = self.section.get(ConfigKey.ROLES) or {}
        self.registry = RoleRegistry.from_mapping(roles, self.resolver)
        for role in self.registry:
            self.logger.debug(f"Role {role.name}: {role.describe()}")

        source = self.section.get(ConfigKey.RULES_FILE) or STDIN_SOURCE
        self.logger.debug(f"Loading rules from {source}")
        lines = read_rule_lines(source)
        source_name = "<stdin>" if source == STDIN_SOURCE else source

        try:
            self.rule_table = RuleTable.load(lines, self.registry, source_name)
        except RuleTableError as e:
            for error in e.errors:
                self.logger.error(str(error))
            raise

        self.logger.debug(f"Loaded {len(self.rule_table)} rules")

        operations = PosixOperations(self.logger, dry_run=bool(self.section.get(ConfigKey.DRY_RUN)))
        self.walker = TreeWalker(
            self.rule_table,
            operations=operations,
            logger=self.logger,
            verbose=bool(self.section.get(ConfigKey.VERBOSE)),
        )

    def walk(self) -> WalkStats:
        """Walk the tree given on the command line."""
        return self.walker.walk(self.args.root)

    def run(self) -> int:
        """
        Run treerights.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            self.initialize_components()

            if getattr(self.args, "check", False):
                self.logger.info(
                    f"Configuration OK: {len(self.registry)} roles, {len(self.rule_table)} rules"
                )
                return ErrorCode.SUCCESS

            self.walk()
            return ErrorCode.SUCCESS

        except (ValidationError, ConfigError, WalkError) as e:
            self.logger.error(f"Fatal error: {e}")
            return e.error_code

        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
            return 130

        except Exception as e:
            self.logger.exception("Unexpected error", e)
            return ErrorCode.INTERNAL_ERROR


def run_treerights(args: argparse.Namespace, config: Dict, logger: Logger, resolver=None) -> int:
    """
    Main entry point for running treerights.

    Args:
        args: Parsed command-line arguments
        config: Merged configuration dictionary
        logger: Logger instance
        resolver: Optional identity resolver

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    return TreeRightsMain(args, config, logger, resolver).run()


def main():
    """
    Entry point when run as standalone script.

    Typically called via cli.py, but can be run directly for testing.
    """
    from treerights.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
