# ginx

ginx is a small HTTP reverse proxy. It runs on a single thread. One
non-blocking IPv4 listening socket accepts clients, and an event poller waits
on every socket. The poller uses epoll where the platform has it and `poll`
everywhere else. Each client request goes to an upstream server that a
round-robin load balancer picks. ginx adds the following headers to the
upstream's reply before it goes back to the client:

- `Server: ginx`
- `Via: ginx/1.0`
- `X-Forwarded-For`, set to the client's `Host` header
- `X-Forwarded-Proto: http`
- `Connection: close`
- `Content-Length`, recomputed from the body

## Installation

```
pip install .
```

The tests need the `test` extra:

```
pip install ".[test]"
pytest
```

## Configuration

ginx reads a YAML file. Before it looks for that file, it loads a `.env` file
from the working directory if one exists. ginx takes the first of these that
is set:

1. the `-c`/`--config` option
2. the `CONFIG_PATH` environment variable
3. `config/development.yaml`

A relative path is taken from the working directory.

```yaml
server:
  address: "127.0.0.1"
  port: 8080
  async_method: epoll
  load_balancer: round_robin
  max_open_files: 1024
  upstream_servers:
    - "127.0.0.1:9001"
    - "http://localhost:9002"
```

- `port`, `max_open_files` and at least one entry in `upstream_servers` are
  required. If any of them is missing or zero, ginx refuses to start.
- `address` is the IPv4 address to bind. If it is empty, ginx binds to all
  interfaces.
- `max_open_files` is the most events handled per wait.
- `load_balancer` must be `round_robin`. ginx rejects any other value.
- `async_method` is read and logged, but it has no effect.
- An upstream entry without a scheme gets `http://` added. A host name is
  resolved to its first IP address once, at startup.

## Running

```
ginx
ginx --config /etc/ginx/production.yaml
```

ginx serves until it is interrupted with Ctrl-C. It exits with status 1 in
three cases:

- the configuration cannot be loaded
- the load balancer cannot be set up
- the listening socket cannot be opened

ginx writes its log to standard error as JSON, one object per line. Each
record has `time`, `level`, `source` and `msg`, plus any fields given with
the record. By default, records below `INFO` are left out.

## Using it as a library

- `ginx.parser.HTTPParser` parses in-memory HTTP/1.x messages with
  `parse_request` and `parse_response`, and serialises them again with
  `rebuild_request` and `rebuild_response`. A message that cannot be parsed
  raises `HTTPParseError`, which is a `ValueError`. `status_text` gives the
  reason phrase used for a status code.
- `ginx.loadbalancer.RoundRobinLoadBalancer` cycles through a list of
  `ginx.entity.UpstreamServer` objects. `resolve_upstream` turns an address
  string into an `UpstreamServer`. `new_load_balancer` builds the balancer
  that a `ServerConfig` names.
- `ginx.config.parse_config` turns YAML text into a validated `ServerConfig`.
  `load_config` reads it from a file. Both raise `ConfigError` when the
  configuration is invalid.
- `ginx.logger.Logger` writes JSON records to any text stream. Use
  `ginx.logger.set_default` to replace the logger the package writes to.
- `ginx.server.Server` puts the pieces together. `listen` opens the socket,
  `serve_once` handles one batch of events, `start` serves in a loop and
  `stop` closes the listening socket.

```python
from ginx.parser import HTTPParser

parser = HTTPParser()
request = parser.parse_request(b"GET / HTTP/1.1\r\nHost: example.com\r\n\r\n")
print(request.method, request.path, request.headers["Host"])
```

```python
import sys
from ginx import logger

logger.set_default(logger.Logger(sys.stdout, logger.Level.DEBUG))
```

## What it does not do

ginx is a deliberately small proxy.

- It reads at most 4096 bytes from the client and 4096 bytes from the
  upstream for each connection.
- It sends the request on exactly as received.
- It writes each message with a single send.
- It closes both sides once it has relayed one response.
- It does not support keep-alive, chunked streaming, TLS, IPv6 sockets,
  upstream health checks or weighted balancing.