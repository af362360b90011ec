#!/usr/bin/env python
"""Main entry point for the Notes MCP server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from notes_mcp.config import config
from notes_mcp.models.db_models import init_db
from notes_mcp.observability import configure_logging
from notes_mcp.server.mcp_server import NotesMcpServer


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Notes MCP Server")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("NOTES_MCP_DATABASE_PATH")
    )
    parser.add_argument(
        "--in-memory",
        help="Use a throwaway in-memory database",
        action="store_true",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTES_MCP_LOG_LEVEL", "INFO").upper()
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files",
        type=str,
        default=os.environ.get("NOTES_MCP_LOG_DIR")
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.in_memory:
        config.in_memory_db = True
    if args.log_dir:
        config.log_dir = Path(args.log_dir)
    config.log_level = args.log_level


def main(argv=None):
    """Run the Notes MCP server."""
    # Parse arguments and update config
    args = parse_args(argv)
    update_config(args)

    # Configure logging (console + persistent file logging with rotation)
    log_level = getattr(logging, config.log_level, logging.INFO)
    try:
        log_dir = configure_logging(config.log_dir, level=log_level, console=True)
    except Exception as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    # Initialize database schema; a single engine is shared by all repositories
    try:
        logger.info(f"Using SQLite database: {config.get_db_url()}")
        engine = init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)

    try:
        logger.info("Starting Notes MCP server")
        server = NotesMcpServer(engine=engine)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
