#!/usr/bin/env python3
"""
Operations utilities - CLI tools for the review workflow database and server.
"""

import argparse
import sys
from pathlib import Path

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core import config
from src.core.config import REVIEWER_GROUP_KEY, ConfigurationService, validate_workflow_config
from src.core.db import health_check, init_db
from src.workflow.factory import build_services
from util.logging import logger


def init_db_command(args):
    """Create the workflow tables if they do not exist."""
    init_db()
    print(f"✅ Database initialized at {config.DB_PATH}")
    return 0


def check_config_command(args):
    """Validate workflow properties and database health."""
    issues = validate_workflow_config(ConfigurationService())
    if not health_check():
        issues.append(f"Database at {config.DB_PATH} is missing tables")

    if issues:
        print("❌ Configuration issues found:")
        for issue in issues:
            print(f"   - {issue}")
        return 1

    print("✅ Configuration OK")
    return 0


def reviewer_pool_command(args):
    """Show the configured reviewer pool and its members."""
    services = build_services()
    group = services.reviewer_pool.resolve()
    if group is None:
        configured = services.configuration.get_property(REVIEWER_GROUP_KEY)
        print(f"⚠️  No reviewer pool resolved ({REVIEWER_GROUP_KEY}={configured})")
        print("   Any person may be selected as a reviewer")
        return 0

    members = services.identity.all_members(group)
    print(f"Reviewer pool: {group.name} ({group.id})")
    print(f"   Members: {len(members)}")
    for person in members[:args.limit]:
        print(f"     - {person.email}")
    if len(members) > args.limit:
        print(f"     ... and {len(members) - args.limit} more")
    return 0


def serve_command(args):
    """Run the HTTP API."""
    import uvicorn

    init_db()
    logger.info(f"Starting review workflow API on {args.host}:{args.port}")
    uvicorn.run("src.api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv=None):
    """Main CLI entry point for operations utilities."""
    parser = argparse.ArgumentParser(
        description="Review Workflow Operations CLI Utilities",
        prog="python scripts/ops_util.py"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init-db", help="Create the database schema")
    init_parser.set_defaults(func=init_db_command)

    config_parser = subparsers.add_parser("check-config", help="Validate workflow configuration")
    config_parser.set_defaults(func=check_config_command)

    pool_parser = subparsers.add_parser("reviewer-pool", help="Show the reviewer pool")
    pool_parser.add_argument("--limit", type=int, default=20, help="Members to list (default: 20)")
    pool_parser.set_defaults(func=reviewer_pool_command)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")
    serve_parser.set_defaults(func=serve_command)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except Exception as e:
        print(f"❌ {args.command} failed: {e}")
        logger.error(f"CLI {args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
