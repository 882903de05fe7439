"""Command-line entry point that runs the proxy."""

from __future__ import annotations

import argparse
import sys

from ginx import logger
from ginx.config import ConfigError, load_config
from ginx.loadbalancer import LoadBalancerError, new_load_balancer
from ginx.parser import HTTPParser
from ginx.poller import EventPoller
from ginx.server import Server
from ginx.sockets import SocketManager


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ginx", description="Load-balancing HTTP reverse proxy.")
    parser.add_argument(
        "-c",
        "--config",
        help="path of the YAML configuration (default: $CONFIG_PATH or config/development.yaml)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Load the configuration and serve until interrupted; return the exit status."""
    args = _build_arg_parser().parse_args(argv)
    logger.default()
    logger.info("Starting ginx proxy server")

    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        logger.error("Failed to load config", error=exc)
        return 1

    settings = cfg.server
    logger.info(
        "Config loaded successfully",
        port=settings.port,
        async_method=settings.async_method,
        load_balancer=settings.load_balancer,
        upstream_servers=settings.upstream_servers,
    )

    sockets = SocketManager()
    try:
        poller = EventPoller(settings.max_open_files)
    except (OSError, ValueError) as exc:
        logger.error("Failed to initialize event poller", error=exc)
        return 1

    with poller:
        try:
            balancer = new_load_balancer(cfg)
        except LoadBalancerError as exc:
            logger.error("Failed to initialize load balancer", error=exc)
            return 1

        server = Server(cfg, sockets, poller, HTTPParser(), balancer)
        try:
            server.start()
        except KeyboardInterrupt:
            logger.info("Shutting down ginx proxy server")
        except (OSError, ValueError) as exc:
            logger.error("Failed to start server", error=exc)
            return 1
        finally:
            server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())