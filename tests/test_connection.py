from ginx.connection import Connection, ConnectionState
from ginx.entity import UpstreamServer


def test_state_values():
    assert ConnectionState.CLIENT_ACCEPTED.value == "client_accepted"
    assert ConnectionState("forwarding_request") is ConnectionState.FORWARDING_REQUEST
    assert ConnectionState.COMPLETED == "completed"


def test_all_states_distinct():
    values = [
        "client_accepted",
        "request_received",
        "connecting_upstream",
        "forwarding_request",
        "waiting_response",
        "sending_response",
        "completed",
        "error",
    ]
    states = [ConnectionState(value) for value in values]
    assert [state.value for state in states] == values
    assert len(set(states)) == 8


def test_new_connection_defaults():
    conn = Connection(client_fd=5)
    assert conn.client_fd == 5
    assert conn.state is ConnectionState.CLIENT_ACCEPTED
    assert conn.upstream_fd == 0
    assert conn.upstream_server is None
    assert conn.closed is False
    assert conn.request.headers == {}


def test_connections_do_not_share_messages():
    a, b = Connection(client_fd=1), Connection(client_fd=2)
    a.request.headers["Host"] = "example.com"
    assert b.request.headers == {}


def test_connection_is_mutable_and_identity_compared():
    conn = Connection(client_fd=3)
    conn.upstream_server = UpstreamServer.from_url("http://127.0.0.1:9001")
    conn.upstream_fd = 4
    conn.state = ConnectionState.CONNECTING_UPSTREAM
    assert conn.upstream_server.port == 9001
    assert conn.state is ConnectionState.CONNECTING_UPSTREAM
    assert conn != Connection(client_fd=3)
    assert conn == conn