"""Event loop that accepts clients and relays each request to an upstream server."""

from __future__ import annotations

from contextlib import suppress

from ginx import logger
from ginx.config import ServerConfig
from ginx.connection import Connection, ConnectionState
from ginx.loadbalancer import LoadBalancer, LoadBalancerError
from ginx.parser import HTTPParser
from ginx.poller import EDGE, ERR, HUP, IN, OUT, EventPoller
from ginx.sockets import SocketManager

READ_SIZE = 4096
_POLL_INTERVAL = 1.0


class Server:
    """Single-threaded reverse proxy driven by readiness events."""

    def __init__(
        self,
        config: ServerConfig,
        sockets: SocketManager,
        poller: EventPoller,
        parser: HTTPParser,
        load_balancer: LoadBalancer,
    ) -> None:
        self.config = config
        self._sockets = sockets
        self._poller = poller
        self._parser = parser
        self._load_balancer = load_balancer
        self._connections: dict[int, Connection] = {}
        self._listen_fd: int | None = None
        self._running = False

    @property
    def listen_fd(self) -> int | None:
        return self._listen_fd

    @property
    def connections(self) -> dict[int, Connection]:
        """Snapshot of live connections keyed by client and upstream descriptors."""
        return dict(self._connections)

    def listen(self) -> int:
        """Open, bind and register the listening socket; return its descriptor."""
        settings = self.config.server
        try:
            fd = self._sockets.create_socket(None)
        except OSError as exc:
            logger.error("Failed to create socket", error=exc)
            raise
        try:
            try:
                self._sockets.bind_socket(fd, settings.address, settings.port)
            except (OSError, ValueError) as exc:
                logger.error("Failed to bind socket", error=exc)
                raise
            logger.info(
                "Server started and listening",
                address=f"{settings.address}:{settings.port}",
                fd=fd,
            )
            try:
                self._sockets.start_listening(fd)
            except OSError as exc:
                logger.error("Failed to listen on socket", error=exc)
                raise
            try:
                self._poller.add(fd, IN)
            except OSError as exc:
                logger.error("Failed to add socket to epoll", error=exc)
                raise
        except BaseException:
            with suppress(OSError):
                self._sockets.close_socket(fd)
            raise
        self._listen_fd = fd
        return fd

    def serve_once(self, timeout: float | None = None) -> int:
        """Wait for one batch of events, handle them and return how many there were."""
        try:
            events = self._poller.wait(timeout)
        except InterruptedError:
            return 0
        except OSError as exc:
            logger.error("Failed to wait for events", error=exc)
            raise
        for fd, mask in events:
            self.handle_event(fd, mask)
        return len(events)

    def start(self) -> None:
        """Listen if not yet listening, then serve until stopped."""
        if self._listen_fd is None:
            self.listen()
        self._running = True
        while self._running:
            self.serve_once(_POLL_INTERVAL)

    def stop(self) -> None:
        """Stop serving and close the listening socket."""
        self._running = False
        fd = self._listen_fd
        if fd is None:
            return
        self._listen_fd = None
        try:
            self._poller.remove(fd)
        except (OSError, ValueError) as exc:
            logger.error("Failed to remove socket from epoll", error=exc)
        try:
            self._sockets.close_socket(fd)
        except OSError as exc:
            logger.error("Failed to close socket", error=exc)

    def handle_event(self, fd: int, events: int) -> None:
        """React to readiness ``events`` reported for descriptor ``fd``."""
        if fd == self._listen_fd and events & IN:
            try:
                self._handle_new_connection()
            except OSError as exc:
                logger.error("Error accepting new client connection", error=exc, fd=fd)
            return

        conn = self._connections.get(fd)
        if conn is None:
            logger.error("Connection not found while handling event", fd=fd, event_type=events)
            return

        for flag, name, message in (
            (ERR, "EPOLLERR", "Socket error detected by epoll"),
            (HUP, "EPOLLHUP", "Connection hangup detected by epoll"),
        ):
            if events & flag:
                logger.error(message, fd=fd, event_type=name)
                self._sockets.check_socket_state(fd)
                self._cleanup_connection(fd)
                return

        if conn.state is ConnectionState.CLIENT_ACCEPTED and events & IN:
            try:
                if not self._handle_client_request(fd, conn):
                    return
            except (OSError, ValueError) as exc:
                logger.error("Failed to handle client request", fd=fd, error=exc)
                self._cleanup_connection(fd)
                return
            try:
                self._handle_connect_upstream(fd, conn)
            except (OSError, ValueError, LoadBalancerError) as exc:
                logger.error("Failed to handle connect upstream", fd=fd, error=exc)
                self._cleanup_connection(fd)
        elif conn.state is ConnectionState.CONNECTING_UPSTREAM and events & OUT:
            try:
                self._handle_forward_upstream(fd, conn)
            except OSError as exc:
                logger.error("Failed to handle forward upstream", error=exc)
                self._cleanup_connection(fd)
        elif conn.state is ConnectionState.FORWARDING_REQUEST and events & IN:
            try:
                self._handle_upstream_response(fd, conn)
            except (OSError, ValueError) as exc:
                logger.error("Failed to handle upstream response", error=exc)
            self._cleanup_connection(fd)

    def _handle_new_connection(self) -> None:
        try:
            conn_fd = self._sockets.accept_connection(self._listen_fd)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as exc:
            logger.error("Failed to accept connection", error=exc)
            raise

        try:
            self._poller.add(conn_fd, IN | EDGE)
        except OSError as exc:
            logger.error("Failed to add connection to epoll", fd=conn_fd, error=exc)
            with suppress(OSError):
                self._sockets.close_socket(conn_fd)
            return

        self._connections[conn_fd] = Connection(client_fd=conn_fd)
        logger.info("New connection accepted", fd=conn_fd)

    def _handle_client_request(self, client_fd: int, conn: Connection) -> bool:
        logger.debug("Processing client request", client_fd=client_fd)
        try:
            data = self._sockets.read_from_socket(client_fd, READ_SIZE)
        except (BlockingIOError, InterruptedError):
            logger.info("No client data ready", fd=client_fd)
            return False
        except OSError as exc:
            logger.error("Failed to read from socket", error=exc)
            raise

        try:
            request = self._parser.parse_request(data)
        except ValueError as exc:
            logger.error("Failed to parse HTTP request", error=exc)
            raise

        host = request.headers.get("Host", "")
        conn.client_address = host
        conn.request = request
        conn.state = ConnectionState.REQUEST_RECEIVED
        logger.info(
            "HTTP request received",
            client_fd=client_fd,
            method=request.method,
            path=request.path,
            host=host,
        )
        return True

    def _handle_connect_upstream(self, client_fd: int, conn: Connection) -> None:
        logger.debug("Initiating upstream connection", client_fd=client_fd)
        try:
            upstream = self._load_balancer.select_server()
        except LoadBalancerError as exc:
            logger.error("Failed to select upstream server", error=exc)
            raise
        logger.debug(
            "Selected upstream server for request",
            client_fd=client_fd,
            upstream_host=upstream.host,
        )

        conn.request.headers["Host"] = upstream.host

        try:
            upstream_fd = self._sockets.connect_to_socket(upstream.hostname, upstream.port or 0)
        except (OSError, ValueError) as exc:
            logger.error("Failed to connect to upstream server", error=exc)
            raise

        try:
            self._poller.add(upstream_fd, OUT | EDGE)
        except OSError as exc:
            logger.error("Failed to add upstream server to epoll", error=exc)
            with suppress(OSError):
                self._sockets.close_socket(upstream_fd)
            raise

        conn.upstream_fd = upstream_fd
        conn.upstream_server = upstream
        conn.state = ConnectionState.CONNECTING_UPSTREAM
        self._connections[upstream_fd] = conn

    def _handle_forward_upstream(self, upstream_fd: int, conn: Connection) -> None:
        upstream_host = conn.upstream_server.host if conn.upstream_server else ""
        logger.debug(
            "Forwarding request to upstream",
            client_fd=conn.client_fd,
            upstream_fd=upstream_fd,
            upstream_host=upstream_host,
        )
        conn.request.headers["Host"] = upstream_host

        try:
            self._sockets.write_to_socket(upstream_fd, conn.request.raw)
        except OSError as exc:
            logger.error("Failed to write to upstream server", error=exc)
            raise

        try:
            self._poller.modify(upstream_fd, IN)
        except OSError as exc:
            logger.error("Failed to modify upstream server to epoll", error=exc)
            raise

        conn.state = ConnectionState.FORWARDING_REQUEST

    def _handle_upstream_response(self, upstream_fd: int, conn: Connection) -> None:
        try:
            data = self._sockets.read_from_socket(upstream_fd, READ_SIZE)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as exc:
            logger.error("Failed to read from socket", error=exc)
            raise

        logger.debug(
            "Received response from upstream", upstream_fd=upstream_fd, client_fd=conn.client_fd
        )

        try:
            response = self._parser.parse_response(data)
        except ValueError as exc:
            logger.error("Failed to parse HTTP response", error=exc)
            raise

        conn.response = response
        conn.state = ConnectionState.WAITING_RESPONSE

        response.headers.update(
            {
                "Server": "ginx",
                "X-Forwarded-For": conn.client_address,
                "X-Forwarded-Proto": "http",
                "Via": "ginx/1.0",
                "Connection": "close",
                "Content-Length": str(len(response.body)),
            }
        )
        response.raw = self._parser.rebuild_response(response)

        try:
            self._sockets.write_to_socket(conn.client_fd, response.raw)
        except OSError as exc:
            logger.error("Failed to write to client", error=exc)
            raise

        logger.info(
            "Request completed",
            client_fd=conn.client_fd,
            status_code=response.status_code,
            content_length=len(response.body),
        )
        conn.state = ConnectionState.COMPLETED

    def _cleanup_connection(self, fd: int) -> None:
        conn = self._connections.get(fd)
        if conn is None:
            logger.error("Connection not found in cleanupConnection", fd=fd)
            return
        if conn.closed:
            return
        conn.closed = True

        self._connections.pop(conn.client_fd, None)
        if conn.upstream_fd:
            self._connections.pop(conn.upstream_fd, None)

        for side in (conn.client_fd, conn.upstream_fd):
            if not side:
                continue
            with suppress(OSError, ValueError):
                self._poller.remove(side)
            with suppress(OSError):
                self._sockets.close_socket(side)
        logger.info(
            "Connection terminated", client_fd=conn.client_fd, upstream_fd=conn.upstream_fd
        )