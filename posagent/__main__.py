"""Command line entry point.

    posagent [run]      start the long-lived print agent
    posagent check      log in with every configured credential and report
"""

from __future__ import annotations

import argparse
import asyncio
import os
import pathlib
import sys

from loguru import logger

from posagent import __version__
from posagent.agent import PosAgent, setupLogging
from posagent.engine.config import loadConfig
from posagent.engine.errors import ConfigError


def parseArgs(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="posagent", description="Theater POS agent: prints paid orders as they arrive."
    )
    parser.add_argument(
        "command", nargs="?", choices=("run", "check"), default="run", help="default: run"
    )
    parser.add_argument(
        "--config",
        default=os.getenv("POS_AGENT_CONFIG", "config.json"),
        help="JSON config file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-file",
        default=os.getenv("POS_AGENT_LOGFILE"),
        help="log file (default: agent.log next to the config file)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parseArgs(argv)
    configPath = pathlib.Path(args.config)
    logFile = pathlib.Path(args.log_file) if args.log_file else configPath.parent / "agent.log"

    setupLogging(logFile, os.getenv("POS_AGENT_LOGLEVEL", "INFO"))

    try:
        config = loadConfig(configPath)
    except ConfigError as e:
        logger.error("ERROR: {}", e)
        return 2 if args.command == "check" else 1

    agent = PosAgent(config)

    try:
        if args.command == "check":
            return 0 if asyncio.run(agent.check()) else 1

        asyncio.run(agent.run())
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Exiting!")

    return 0


if __name__ == "__main__":
    sys.exit(main())
