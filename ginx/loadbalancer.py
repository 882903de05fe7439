"""Choosing an upstream server for each proxied request."""

from __future__ import annotations

import ipaddress
import socket
from abc import ABC, abstractmethod
from typing import Iterable

from ginx import logger
from ginx.config import ServerConfig
from ginx.entity import UpstreamServer


class LoadBalancerError(Exception):
    """Raised when upstreams cannot be set up or none can be chosen."""


class LoadBalancer(ABC):
    """Strategy that hands out upstream servers."""

    @abstractmethod
    def select_server(self) -> UpstreamServer:
        """Return the server for the next request."""

    @abstractmethod
    def add_server(self, server: UpstreamServer) -> None:
        """Add a server to the pool."""

    @abstractmethod
    def remove_server(self, server: UpstreamServer) -> None:
        """Remove a server from the pool; absent servers are ignored."""


class RoundRobinLoadBalancer(LoadBalancer):
    """Cycles through the servers in order."""

    def __init__(
        self, upstream_servers: Iterable[UpstreamServer] = (), current_server: int = 0
    ) -> None:
        self._servers = list(upstream_servers)
        self._current = current_server

    @property
    def servers(self) -> list[UpstreamServer]:
        return list(self._servers)

    def select_server(self) -> UpstreamServer:
        if not self._servers:
            raise LoadBalancerError("no upstream servers")
        index = self._current % len(self._servers)
        self._current = (index + 1) % len(self._servers)
        return self._servers[index]

    def add_server(self, server: UpstreamServer) -> None:
        self._servers.append(server)

    def remove_server(self, server: UpstreamServer) -> None:
        try:
            self._servers.remove(server)
        except ValueError:
            pass


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def _lookup_host(host: str) -> list[str]:
    try:
        infos = socket.getaddrinfo(host, None)
    except (socket.gaierror, OSError) as exc:
        logger.error("Failed to resolve hostname", host=host, error=exc)
        raise LoadBalancerError(f"failed to resolve {host}: {exc}") from exc
    addresses: list[str] = []
    for info in infos:
        address = str(info[4][0])
        if address not in addresses:
            addresses.append(address)
    return addresses


def resolve_upstream(server: str) -> UpstreamServer:
    """Parse an upstream address, resolving a hostname to its first IP address."""
    if "://" not in server:
        server = "http://" + server
    try:
        upstream = UpstreamServer.from_url(server)
    except ValueError as exc:
        raise LoadBalancerError(f"invalid upstream URL {server}: {exc}") from exc

    if not upstream.host:
        raise LoadBalancerError(f"missing host in URL: {server}")

    host = upstream.hostname
    if not _is_ip(host):
        logger.info("Resolving hostname", host=host)
        addresses = _lookup_host(host)
        if not addresses:
            raise LoadBalancerError(f"no IP addresses found for {host}")
        ip = addresses[0]
        shown = f"[{ip}]" if ":" in ip else ip
        new_host = f"{shown}:{upstream.port}" if upstream.port is not None else shown
        userinfo, at, _ = upstream.url.netloc.rpartition("@")
        netloc = f"{userinfo}{at}{new_host}"
        upstream = UpstreamServer(upstream.url._replace(netloc=netloc), upstream.weight)
        logger.debug("Resolved hostname", host=host, ip=ip)
    return upstream


def new_load_balancer(config: ServerConfig) -> LoadBalancer:
    """Build the load balancer named in the configuration."""
    servers = []
    for entry in config.server.upstream_servers:
        upstream = resolve_upstream(entry)
        servers.append(upstream)
        logger.info("Added upstream server", url=str(upstream))

    kind = config.server.load_balancer
    if kind == "round_robin":
        return RoundRobinLoadBalancer(servers, 0)
    raise LoadBalancerError(f"unsupported load balancer type: {kind}")