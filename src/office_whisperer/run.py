'''
Run the Office Whisperer JSON-RPC server on stdin/stdout.

Usage:
    office-whisperer [--config PATH] [--log-level LEVEL] [--data-path DIR]
    python -m office_whisperer

Logs are written to stderr; stdout carries only protocol messages.
Without --data-path (or data_path in the config) tools may read and write
any path the process can access.
'''

import argparse
import asyncio
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .config import LOG_LEVELS, ServerConfig, build_config
from .generators import ExcelGenerator, OutlookGenerator, PowerPointGenerator, WordGenerator
from .paths import OutputPaths
from .server import Dispatcher
from .tools import build_registry
from .transport import serve_stdio

import logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s', stream=sys.stderr)
logger = logging.getLogger(__name__)


def create_dispatcher(config: ServerConfig) -> Dispatcher:
    """Construct the generators and wire them into a dispatcher."""
    paths = OutputPaths(config.data_path)
    registry = build_registry(
        excel=ExcelGenerator(),
        word=WordGenerator(),
        powerpoint=PowerPointGenerator(),
        outlook=OutlookGenerator(),
        paths=paths,
    )
    logger.info(f"Registered {len(registry)} tools")
    if paths.data_path:
        logger.info(f"Data path: {paths.data_path}")
    else:
        logger.info("No data path configured, file paths are not confined")
    return Dispatcher(
        registry,
        server_name=config.server.name,
        server_version=config.server.version,
        protocol_version=config.server.protocol_version,
    )


async def _serve(config: ServerConfig) -> int:
    loop = asyncio.get_running_loop()
    loop.set_default_executor(ThreadPoolExecutor(max_workers=config.max_workers))
    dispatcher = create_dispatcher(config)
    return await serve_stdio(dispatcher)


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="Office Whisperer JSON-RPC server (stdio)")
    parser.add_argument("--config", type=str, default=None,
                        help="Path to the YAML configuration file")
    parser.add_argument("--log-level", type=str, default=None, choices=LOG_LEVELS,
                        help="Logging level (default: from config, INFO)")
    parser.add_argument("--data-path", type=str, default=None,
                        help="Confine all document reads and writes to this directory")
    args = parser.parse_args(argv)

    try:
        config = build_config(args.config, log_level=args.log_level, data_path=args.data_path)
    except Exception as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    logging.getLogger().setLevel(getattr(logging, config.log_level))
    logger.info(f"Starting {config.server.name} {config.server.version} on stdio")

    try:
        code = asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
