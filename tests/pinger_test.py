import contextlib
import json
import logging
import os
import socket
import sys
import threading

import pytest

try:
    import pingutils
except ImportError:
    sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    import pingutils

from pingutils import (
    DecodeError,
    Logger,
    PingOptions,
    Pinger,
    ProtocolError,
    ServerConnectionError,
    SessionState,
    ValidationError,
)
from pingutils.protocol.connector import MCSocket
from pingutils.protocol.packet import Packet

STATUS = {
    "description": "A server",
    "players": {"max": 20, "online": 0},
    "version": {"name": "1.8", "protocol": 47},
}

HANDSHAKE = b"\x0f\x00\x04\x09localhost\x63\xdd\x01"


class FakeSocket:
    """Replays ``incoming`` and records what the client sends"""

    def __init__(self, incoming: bytes = b""):
        self.incoming = incoming
        self.sent = b""
        self.close_count = 0
        self.timeout = "unset"

    def settimeout(self, timeout):
        self.timeout = timeout

    def sendall(self, data):
        self.sent += data

    def recv(self, n):
        # hand the bytes out one at a time to exercise partial reads
        chunk, self.incoming = self.incoming[:1], self.incoming[1:]
        return chunk

    def close(self):
        self.close_count += 1


class Factory:
    def __init__(self, sock=None, error: Exception = None):
        self.sock = sock
        self.error = error
        self.calls = []

    def __call__(self, address, timeout):
        self.calls.append((address, timeout))
        if self.error is not None:
            raise self.error
        return self.sock


def status_frame(doc, packet_id=0x00) -> bytes:
    data = (doc if isinstance(doc, str) else json.dumps(doc)).encode("utf-8")
    return Packet.frame(packet_id, Packet.encode_varint(len(data)) + data)


def pong_frame(payload=0, packet_id=0x01) -> bytes:
    return Packet.frame(packet_id, Packet.encode_long(payload))


def make_pinger(incoming: bytes):
    sock = FakeSocket(incoming)
    factory = Factory(sock)
    logger = Logger(debug=True, name="pingutils.test")
    return Pinger(logger=logger, socket_factory=factory), sock, factory


def options(**kwargs):
    return PingOptions(hostname="localhost", **kwargs)


# Full sessions


def test_full_session():
    pinger, sock, factory = make_pinger(status_frame(STATUS) + pong_frame(42))

    reply = pinger.ping(options())

    assert reply.description == "A server"
    assert reply.players.max == 20
    assert reply.players.online == 0
    assert reply.version.name == "1.8"
    assert reply.version.protocol == 47
    assert reply.favicon is None
    assert reply.latency is not None and reply.latency >= 0

    assert factory.calls == [(("localhost", 25565), 2.0)]
    assert sock.timeout is None
    assert sock.close_count == 1


def test_full_session_bytes_sent():
    pinger, sock, _ = make_pinger(status_frame(STATUS) + pong_frame())

    pinger.ping(options())

    assert sock.sent.startswith(HANDSHAKE)
    rest = sock.sent[len(HANDSHAKE):]
    assert rest[:2] == b"\x01\x00"
    assert rest[2:4] == b"\x09\x01"
    assert len(rest) == 2 + 10


def test_pong_payload_is_not_compared():
    pinger, sock, _ = make_pinger(status_frame(STATUS) + pong_frame(-12345))
    assert pinger.ping(options()).description == "A server"


def test_short_pong_is_accepted():
    # only the pong length and id are read
    pinger, sock, _ = make_pinger(status_frame(STATUS) + b"\x01\x01")
    pinger.ping(options())
    assert sock.close_count == 1


def test_get_ping_defaults():
    pinger, sock, factory = make_pinger(status_frame(STATUS) + pong_frame())
    pinger.get_ping("localhost")
    assert factory.calls == [(("localhost", 25565), 2.0)]


def test_custom_port_timeout_and_charset():
    doc = json.dumps({"description": "Grüße"}, ensure_ascii=False).encode("latin-1")
    incoming = Packet.frame(0x00, Packet.encode_varint(len(doc)) + doc) + pong_frame()
    pinger, sock, factory = make_pinger(incoming)

    reply = pinger.ping(options(port=25570, timeout=0, charset="ISO-8859-1"))

    assert reply.description == "Grüße"
    assert factory.calls == [(("localhost", 25570), None)]
    assert sock.sent[-12:-10] == b"\x01\x00"


# Protocol errors


def test_invalid_status_packet_id():
    pinger, sock, _ = make_pinger(status_frame(STATUS, packet_id=0x05))

    with pytest.raises(ProtocolError, match="Server returned invalid packet."):
        pinger.ping(options())

    # nothing is sent after the bad response
    assert sock.sent == HANDSHAKE + b"\x01\x00"
    assert sock.close_count == 1


def test_zero_length_status():
    pinger, sock, _ = make_pinger(b"\x02\x00\x00")

    with pytest.raises(ProtocolError, match="Server returned unexpected value."):
        pinger.ping(options())
    assert sock.close_count == 1


def test_negative_length_status():
    pinger, sock, _ = make_pinger(Packet.frame(0x00, Packet.encode_varint(-5)))

    with pytest.raises(ProtocolError, match="Server returned unexpected value."):
        pinger.ping(options())


def test_status_length_sentinel():
    pinger, sock, _ = make_pinger(Packet.frame(0x00, Packet.encode_varint(-1)))

    with pytest.raises(ProtocolError, match="Server prematurely ended stream."):
        pinger.ping(options())


@pytest.mark.parametrize(
    "incoming",
    [
        b"",
        b"\x05",
        b"\x05\xff\xff\xff\xff\x0f",
        status_frame(STATUS)[:-5],
        Packet.frame(0x00),
    ],
)
def test_premature_end_of_status(incoming):
    pinger, sock, _ = make_pinger(incoming)

    with pytest.raises(ProtocolError, match="Server prematurely ended stream."):
        pinger.ping(options())
    assert sock.close_count == 1


def test_status_json_longer_than_frame():
    data = b"{}"
    incoming = Packet.frame(0x00, Packet.encode_varint(50) + data) + b"x" * 100
    pinger, sock, _ = make_pinger(incoming)

    with pytest.raises(ProtocolError, match="Server prematurely ended stream."):
        pinger.ping(options())


def test_frame_shorter_than_id():
    pinger, sock, _ = make_pinger(b"\x00\x00")

    with pytest.raises(ProtocolError, match="Server returned unexpected value."):
        pinger.ping(options())


def test_varint_too_big_in_response():
    pinger, sock, _ = make_pinger(b"\xff\xff\xff\xff\xff\xff")

    with pytest.raises(ProtocolError, match="VarInt too big"):
        pinger.ping(options())
    assert sock.close_count == 1


def test_invalid_pong_id_closes_once():
    pinger, sock, _ = make_pinger(status_frame(STATUS) + pong_frame(packet_id=0x05))

    with pytest.raises(ProtocolError, match="Server returned invalid packet."):
        pinger.ping(options())
    assert sock.close_count == 1


def test_missing_pong_closes_once():
    pinger, sock, _ = make_pinger(status_frame(STATUS))

    with pytest.raises(ProtocolError, match="Server prematurely ended stream."):
        pinger.ping(options())
    assert sock.close_count == 1


def test_web_server_response():
    pinger, sock, _ = make_pinger(b"HTTP/1.1 400 Bad Request\r\n\r\n" + b" " * 100)

    with pytest.raises(ProtocolError, match="Server returned invalid packet."):
        pinger.ping(options())


# Decode errors


def test_malformed_json():
    pinger, sock, _ = make_pinger(status_frame("{not json") + pong_frame())

    with pytest.raises(DecodeError):
        pinger.ping(options())
    assert sock.close_count == 1


def test_undecodable_charset():
    doc = b'{"description": "\xff\xfe"}'
    incoming = Packet.frame(0x00, Packet.encode_varint(len(doc)) + doc)
    pinger, sock, _ = make_pinger(incoming)

    with pytest.raises(DecodeError):
        pinger.ping(options())
    assert sock.close_count == 1


# Validation and connection errors


def test_validation_happens_before_connecting():
    pinger, sock, factory = make_pinger(b"")

    with pytest.raises(ValidationError):
        pinger.ping(PingOptions())
    with pytest.raises(ValidationError):
        pinger.ping(PingOptions(hostname="localhost", port=None))

    assert factory.calls == []
    assert sock.close_count == 0


def test_invalid_hostname_never_connects():
    pinger, sock, factory = make_pinger(b"")

    for hostname in ("bad\ud800host", "a" * 64 + ".com"):
        with pytest.raises(ValidationError):
            pinger.ping(PingOptions(hostname=hostname))

    assert factory.calls == []


@pytest.mark.parametrize(
    "error",
    [
        ConnectionRefusedError(111, "Connection refused"),
        socket.timeout("timed out"),
        socket.gaierror(-2, "Name or service not known"),
        OSError(113, "No route to host"),
        UnicodeError("label too long"),
    ],
)
def test_connect_failure(error):
    pinger = Pinger(
        logger=Logger(name="pingutils.test"), socket_factory=Factory(error=error)
    )

    with pytest.raises(ServerConnectionError) as info:
        pinger.ping(options())
    assert info.value.__cause__ is error
    assert isinstance(info.value, ConnectionError)


def test_transport_error_while_reading():
    class ResetSocket(FakeSocket):
        def recv(self, n):
            raise ConnectionResetError(104, "Connection reset by peer")

    sock = ResetSocket()
    pinger = Pinger(logger=Logger(name="pingutils.test"), socket_factory=Factory(sock))

    with pytest.raises(ServerConnectionError):
        pinger.ping(options())
    assert sock.close_count == 1


def test_settimeout_failure_closes_socket():
    class BrokenSocket(FakeSocket):
        def settimeout(self, timeout):
            raise OSError(9, "Bad file descriptor")

    sock = BrokenSocket()
    pinger = Pinger(logger=Logger(name="pingutils.test"), socket_factory=Factory(sock))

    with pytest.raises(ServerConnectionError):
        pinger.ping(options())
    assert sock.close_count == 1


def test_unexpected_error_is_reported():
    class FakeSentry:
        def __init__(self):
            self.captured = []

        def capture_exception(self, exception):
            self.captured.append(exception)

        def start_transaction(self, **kwargs):
            return contextlib.nullcontext()

    err = RuntimeError("bug")

    class BuggySocket(FakeSocket):
        def recv(self, n):
            raise err

    sentry = FakeSentry()
    sock = BuggySocket()
    pinger = Pinger(
        logger=Logger(name="pingutils.test", ssdk=sentry), socket_factory=Factory(sock)
    )

    with pytest.raises(RuntimeError):
        pinger.ping(options())
    assert sentry.captured == [err]
    assert sock.close_count == 1


# Session states


def test_session_states():
    states = []

    class RecordingSocket(MCSocket):
        def set_state(self, state):
            states.append(state)
            super().set_state(state)

    sock = FakeSocket(status_frame(STATUS) + pong_frame())
    mc = RecordingSocket("localhost", 25565, socket_factory=Factory(sock))
    pinger = Pinger(logger=Logger(name="pingutils.test"))

    mc.set_state(SessionState.CONNECTED)
    pinger.exchange(mc, options())
    mc.close()

    assert states == [
        SessionState.CONNECTED,
        SessionState.HANDSHAKE_SENT,
        SessionState.STATUS_REQUESTED,
        SessionState.STATUS_RECEIVED,
        SessionState.PING_SENT,
        SessionState.PING_ACKED,
    ]
    assert mc.closed
    mc.close()
    assert sock.close_count == 1


def test_host_port_string():
    sock = FakeSocket()
    factory = Factory(sock)
    mc = MCSocket("example.com:25570", socket_factory=factory)
    assert mc.addr == ("example.com", 25570)
    assert factory.calls == [(("example.com", 25570), 2.0)]
    mc.close()


def test_recv_packet():
    sock = FakeSocket(Packet.frame(0x07, b"abc") + b"next")
    with MCSocket("localhost", 1, socket_factory=Factory(sock)) as mc:
        p = mc.recv_packet()
        assert p.length == 4
        assert p.id == 0x07
        assert p.read(3) == b"abc"
        assert mc.read(4) == b"next"
    assert sock.close_count == 1


def test_logging(caplog):
    pinger, sock, _ = make_pinger(status_frame(STATUS, packet_id=0x03))

    with caplog.at_level(logging.DEBUG, logger="pingutils.test"):
        with pytest.raises(ProtocolError):
            pinger.ping(options())

    assert any("Expected packet 0x0, got 0x3" in r.getMessage() for r in caplog.records)
    assert any(
        r.levelno == logging.WARNING and "failed" in r.getMessage()
        for r in caplog.records
    )


# Against a real socket


def serve_status(listener: socket.socket, status: bytes):
    conn, _ = listener.accept()
    with conn:

        def read_exact(n):
            data = b""
            while len(data) < n:
                chunk = conn.recv(n - len(data))
                if not chunk:
                    raise EOFError
                data += chunk
            return data

        handshake_length = read_exact(1)[0]
        read_exact(handshake_length)
        assert read_exact(2) == b"\x01\x00"
        conn.sendall(status)

        ping = read_exact(10)
        assert ping[:2] == b"\x09\x01"
        conn.sendall(Packet.frame(0x01, ping[2:]))


def test_real_server():
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]
    server = threading.Thread(
        target=serve_status, args=(listener, status_frame(STATUS)), daemon=True
    )
    server.start()

    try:
        reply = pingutils.ping("127.0.0.1", port=port)
    finally:
        server.join(timeout=5)
        listener.close()

    assert reply.description == "A server"
    assert reply.players.max == 20
    assert reply.version.protocol == 47


def test_refused_connection():
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]
    listener.close()

    with pytest.raises(ServerConnectionError):
        pingutils.ping("127.0.0.1", port=port, timeout=500)
