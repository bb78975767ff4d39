"""Server List Ping client.

One call is one connection: handshake, status request, status response,
ping and pong, then the connection is closed whatever happened.

References: https://wiki.vg/Server_List_Ping
"""
import dataclasses
import socket
import time
from typing import Callable

from .errors import DecodeError, PingError, ProtocolError
from .logger import Logger
from .protocol import Handshake, Status
from .protocol.connector import MCSocket
from .protocol.packet import PROTOCOL_VERSION, States
from .reply import PingOptions, PingReply, decode
from .text import Text

STATUS_RESPONSE_ID = Status.S2C_0x00().id
PONG_ID = Status.S2C_0x01().id


class SessionState:
    CONNECTED = "Connected"
    HANDSHAKE_SENT = "HandshakeSent"
    STATUS_REQUESTED = "StatusRequested"
    STATUS_RECEIVED = "StatusReceived"
    PING_SENT = "PingSent"
    PING_ACKED = "PingAcked"
    CLOSED = "Closed"
    FAILED = "Failed"


class Pinger:
    """Fetches a PingReply from a Minecraft server."""

    def __init__(
        self,
        logger: Logger = None,
        text: Text = None,
        socket_factory: Callable = socket.create_connection,
    ):
        """Initializes the pinger

        Args:
            logger (Logger, optional): The logger to use
            text (Text, optional): Used to flatten descriptions
            socket_factory (Callable, optional): Opens the connection, called as
                ``factory((host, port), timeout)``
        """
        self.logger = logger if logger is not None else Logger()
        self.text = text if text is not None else Text(logger=self.logger)
        self.socket_factory = socket_factory

    def get_ping(self, hostname: str) -> PingReply:
        """Pings ``hostname`` on port 25565 with a 2 second connect timeout"""
        return self.ping(PingOptions(hostname=hostname))

    def ping(self, options: PingOptions) -> PingReply:
        """Fetches a PingReply for the supplied options.

        Args:
            options (PingOptions): The server to ping

        Returns:
            PingReply: The decoded status, with the measured latency

        Raises:
            ValidationError: the options are invalid, nothing was sent
            ServerConnectionError: the server could not be reached
            ProtocolError: the server broke the status protocol
            DecodeError: the status document could not be decoded
        """
        options.validate()

        self.logger.debug(f"Pinging {options.hostname}:{options.port}")
        mc = MCSocket(
            options.hostname,
            options.port,
            timeout=options.timeout_seconds,
            logger=self.logger,
            socket_factory=self.socket_factory,
        )
        try:
            mc.set_state(SessionState.CONNECTED)
            return self.logger.timer(self.exchange, mc, options)
        except PingError as err:
            mc.set_state(SessionState.FAILED)
            self.logger.warning(
                f"Ping to {options.hostname}:{options.port} failed: {err}"
            )
            raise
        except Exception as err:
            mc.set_state(SessionState.FAILED)
            self.logger.exception(
                f"Unexpected error pinging {options.hostname}:{options.port}",
                exception=err,
            )
            raise
        finally:
            mc.close()
            if mc.get_state() != SessionState.FAILED:
                mc.set_state(SessionState.CLOSED)

    def exchange(self, mc: MCSocket, options: PingOptions) -> PingReply:
        """Runs the status exchange on an open connection"""
        self.handshake_status(mc, options.hostname, options.port)
        self.status_request(mc)
        payload = self.status_response(mc, options.charset)

        reply = decode(payload, self.text)

        start = time.perf_counter()
        self.ping_request(mc)
        self.ping_response(mc)
        latency = (time.perf_counter() - start) * 1000

        return dataclasses.replace(reply, latency=latency)

    # Protocol steps

    @staticmethod
    def handshake_status(mc: MCSocket, hostname: str, port: int):
        p = Handshake.C2S_0x00(
            protocol_version=PROTOCOL_VERSION,
            server_address=hostname,
            server_port=port,
            next_state=States.STATUS,
        )
        mc.send_packet(p)
        mc.set_state(SessionState.HANDSHAKE_SENT)

    @staticmethod
    def status_request(mc: MCSocket):
        mc.send_packet(Status.C2S_0x00())
        mc.set_state(SessionState.STATUS_REQUESTED)

    def status_response(self, mc: MCSocket, charset: str) -> str:
        """Reads the status response and returns the JSON document"""
        try:
            response = mc.recv_packet(check=self.expect(mc, STATUS_RESPONSE_ID))
            length = response.read_varint()
        except EOFError as err:
            raise ProtocolError(ProtocolError.PREMATURE_END) from err

        if length == -1:
            raise ProtocolError(ProtocolError.PREMATURE_END)
        if length <= 0:
            raise ProtocolError(ProtocolError.UNEXPECTED_VALUE)

        try:
            data = response.read(length)
        except EOFError as err:
            raise ProtocolError(ProtocolError.PREMATURE_END) from err

        try:
            payload = data.decode(charset)
        except UnicodeDecodeError as err:
            raise DecodeError(f"Status response is not valid {charset}") from err

        mc.set_state(SessionState.STATUS_RECEIVED)
        return payload

    @staticmethod
    def ping_request(mc: MCSocket):
        mc.send_packet(Status.C2S_0x01(payload=int(time.time() * 1000)))
        mc.set_state(SessionState.PING_SENT)

    def ping_response(self, mc: MCSocket):
        """Reads the pong frame header, the echoed payload is not compared"""
        try:
            length, packet_id, _ = mc.recv_header()
        except EOFError as err:
            raise ProtocolError(ProtocolError.PREMATURE_END) from err

        self.expect(mc, PONG_ID)(length, packet_id)
        mc.set_state(SessionState.PING_ACKED)

    def expect(self, mc: MCSocket, expected_id: int) -> Callable[[int, int], None]:
        def check(length: int, packet_id: int):
            if length == -1 or packet_id == -1:
                raise ProtocolError(ProtocolError.PREMATURE_END)
            if packet_id != expected_id:
                if packet_id == 0x54:
                    self.logger.debug(f"{mc.addr[0]} looks like a web server")
                self.logger.debug(
                    f"Expected packet {hex(expected_id)}, got {hex(packet_id)}"
                )
                raise ProtocolError(ProtocolError.INVALID_PACKET)

        return check
