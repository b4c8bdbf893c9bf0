#!/usr/bin/env python3
"""
Joint Stream - Main Entry Point

Usage:
    jointstream                         # Use ./config.yaml (if present) + env
    jointstream --config my.yaml        # Use custom config file
    jointstream --port 8080             # Override listen port
    jointstream --dry-run               # Print resolved config and exit

The service will:
1. Load configuration from YAML file and environment
2. Connect to the PLC via Modbus TCP
3. Serve the WebSocket stream, health probe and on-demand read
4. Close the Modbus session on SIGINT/SIGTERM
"""

import argparse
import json
import socket
import sys

import psutil
import uvicorn

from .api.main import create_app
from .common.config import AppConfig, load_config
from .common.exceptions import ConfigError
from .common.logging_setup import configure_all, get_service_logger

logger = get_service_logger("service")


def get_local_ips() -> dict[str, list[str]]:
    """Non-loopback IPv4/IPv6 addresses of this host"""
    ips: dict[str, list[str]] = {"ipv4": [], "ipv6": []}

    for addresses in psutil.net_if_addrs().values():
        for addr in addresses:
            if addr.family == socket.AF_INET and not addr.address.startswith("127."):
                ips["ipv4"].append(addr.address)
            elif addr.family == socket.AF_INET6 and addr.address != "::1":
                # Strip zone index (fe80::1%eth0)
                ips["ipv6"].append(addr.address.split("%", 1)[0])

    return ips


def log_startup_banner(config: AppConfig) -> None:
    port = config.server.port
    logger.info(f"Server listening on port {port}")
    logger.info(f"Local: http://localhost:{port}")

    ips = get_local_ips()
    if ips["ipv4"]:
        logger.info(f"IPv4: http://{ips['ipv4'][0]}:{port}")
    if ips["ipv6"]:
        logger.info(f"IPv6: http://[{ips['ipv6'][0]}]:{port}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Stream robot joint angles from a PLC over Modbus TCP"
    )
    parser.add_argument("--config", "-c", help="Path to YAML configuration file")
    parser.add_argument("--host", help="Listen address (overrides config)")
    parser.add_argument("--port", "-p", type=int, help="Listen port (overrides config)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print resolved configuration and exit",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(e.message)
        return 1

    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    configure_all(config.logging.level, config.logging.json_format)

    if args.dry_run:
        print(json.dumps(config.to_dict(), indent=2))
        return 0

    app = create_app(config)
    log_startup_banner(config)

    # uvicorn handles SIGINT/SIGTERM and runs the lifespan shutdown,
    # which closes the Modbus session before exit
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
