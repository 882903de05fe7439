"""Readiness notification for many file descriptors."""

from __future__ import annotations

import errno
import os
import select
import threading
from typing import Any

IN = select.POLLIN
OUT = select.POLLOUT
ERR = select.POLLERR
HUP = select.POLLHUP
EDGE = getattr(select, "EPOLLET", 0)


class EventPoller:
    """Waits for I/O readiness, using epoll where available and poll elsewhere."""

    def __init__(self, max_events: int = 128) -> None:
        if max_events < 1:
            raise ValueError(f"max_events must be positive, got {max_events}")
        self.max_events = max_events
        self._lock = threading.Lock()
        self._closed = False
        self._registered: set[int] = set()
        self._epoll = select.epoll() if hasattr(select, "epoll") else None
        self._poll = None if self._epoll is not None else select.poll()

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed poller")

    @staticmethod
    def _missing(fd: int) -> FileNotFoundError:
        return FileNotFoundError(errno.ENOENT, f"{os.strerror(errno.ENOENT)}: fd {fd}")

    def add(self, fd: int, events: int) -> None:
        """Start watching ``fd`` for ``events``; raises if already watched."""
        self._check_open()
        if self._epoll is not None:
            self._epoll.register(fd, events)
            return
        if fd in self._registered:
            raise FileExistsError(errno.EEXIST, f"{os.strerror(errno.EEXIST)}: fd {fd}")
        self._poll.register(fd, events & ~EDGE)
        self._registered.add(fd)

    def remove(self, fd: int) -> None:
        """Stop watching ``fd``; raises if it is not watched."""
        self._check_open()
        if self._epoll is not None:
            self._epoll.unregister(fd)
            return
        if fd not in self._registered:
            raise self._missing(fd)
        self._poll.unregister(fd)
        self._registered.discard(fd)

    def modify(self, fd: int, events: int) -> None:
        """Change the events watched for ``fd``; raises if it is not watched."""
        self._check_open()
        if self._epoll is not None:
            self._epoll.modify(fd, events)
            return
        if fd not in self._registered:
            raise self._missing(fd)
        self._poll.modify(fd, events & ~EDGE)

    def wait(self, timeout: float | None = None) -> list[tuple[int, int]]:
        """Block until events arrive or ``timeout`` seconds pass (None waits forever).

        Returns at most ``max_events`` pairs of (fd, events).
        """
        with self._lock:
            self._check_open()
            if self._epoll is not None:
                return self._epoll.poll(-1 if timeout is None else timeout, self.max_events)
            millis = None if timeout is None else max(0, int(timeout * 1000))
            return self._poll.poll(millis)[: self.max_events]

    def close(self) -> None:
        if self._epoll is not None:
            self._epoll.close()
        self._registered.clear()
        self._closed = True

    def __enter__(self) -> "EventPoller":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()