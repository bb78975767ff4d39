import socket
import time
from typing import Callable, Optional, Tuple

from ..errors import ProtocolError, ServerConnectionError
from ..logger import Logger
from .packet import BasePacket, Packet, S2CPacket

# packet lengths are at most a 3 byte VarInt
MAX_PACKET_LENGTH = 2**21 - 1


class MCSocket:
    """
    Helper class to ease the connection to a Minecraft server.

    Reads block until the requested bytes arrive; the timeout only bounds the
    connect call. The connection is closed at most once.

    Example:

    ```python
    from pingutils.protocol.connector import MCSocket

    with MCSocket("localhost", 25565) as mc:
        mc.send(bytes([0x01, 0x00]))
        length, packet_id, id_size = mc.recv_header()
    ```
    """

    def __init__(
        self,
        host,
        port: int = None,
        timeout: Optional[float] = 2.0,
        logger: Logger = None,
        socket_factory: Callable = socket.create_connection,
    ):
        """
        Connect to a Minecraft server.

        Args:
            host (str): The host, or ``host:port`` when port is None
            port (int, optional): The port to connect to
            timeout (float, optional): Connect timeout in seconds, None waits forever
            logger (Logger, optional): The logger to use
            socket_factory (Callable, optional): Called as ``factory((host, port), timeout)``

        Raises:
            ServerConnectionError: the connection could not be made
        """
        if isinstance(host, str) and port is None:
            host, port = host.rsplit(":", 1)
            port = int(port)

        self.addr = (host, port)
        self.timeout = timeout
        self.logger = logger if logger is not None else Logger()
        self.state = None
        self.closed = False
        self.bytes_read = 0
        self.socket = None

        try:
            self.socket = socket_factory(self.addr, timeout)
        except socket.gaierror as err:
            self.logger.debug(f"Connection error (invalid host) {host}:{port}")
            raise ServerConnectionError(f"Could not resolve {host}") from err
        except (TimeoutError, socket.timeout) as err:
            self.logger.debug(f"Connection error (timeout) {host}:{port}")
            raise ServerConnectionError(f"Timed out connecting to {host}:{port}") from err
        except OSError as err:
            self.logger.debug(f"Connection error ({err}) {host}:{port}")
            raise ServerConnectionError(f"Could not connect to {host}:{port}: {err}") from err
        except UnicodeError as err:
            self.logger.debug(f"Connection error (invalid host) {host}:{port}")
            raise ServerConnectionError(f"Could not resolve {host}: {err}") from err

        # the timeout only applies to connecting
        try:
            self.socket.settimeout(None)
        except OSError as err:
            self.close()
            raise ServerConnectionError(f"Could not configure connection to {host}:{port}: {err}") from err

        self.logger.debug(f"Connected to {host}:{port}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def send(self, data: bytes) -> None:
        try:
            self.socket.sendall(data)
        except OSError as err:
            raise ServerConnectionError(f"Failed to send to {self.addr[0]}: {err}") from err

    def recv(self, n: int) -> bytes:
        """Returns whatever the socket yields, at most ``n`` bytes"""
        try:
            return self.socket.recv(n)
        except OSError as err:
            raise ServerConnectionError(f"Failed to read from {self.addr[0]}: {err}") from err

    def read(self, length: int) -> bytes:
        """Reads exactly ``length`` bytes.

        Raises:
            EOFError: the server closed the stream first
        """
        result = b""
        while len(result) < length:
            new = self.recv(length - len(result))
            if not new:
                raise EOFError(
                    f"Connection closed with {length - len(result)} bytes remaining"
                )
            result += new
        self.bytes_read += len(result)
        return result

    def read_varint(self) -> int:
        return Packet.decode_varint(self)

    def close(self):
        if self.closed:
            return
        self.closed = True
        if self.socket is not None:
            self.socket.close()
            self.logger.debug(f"Closed connection to {self.addr[0]}:{self.addr[1]}")

    def set_state(self, state):
        self.logger.debug(f"State {self.state} -> {state}")
        self.state = state

    def get_state(self):
        return self.state

    def send_packet(self, p: BasePacket):
        tStart = time.perf_counter()

        assert isinstance(p, BasePacket)
        self.send(p.toBytes())

        tEnd = time.perf_counter()
        self.logger.debug(f"Sent packet: {hex(p.id)} in {tEnd - tStart:.2f} seconds")

    def recv_header(self) -> Tuple[int, int, int]:
        """Reads the frame length and the packet id.

        Returns:
            tuple: ``(length, packet_id, id_size)`` where ``id_size`` is how
            many bytes the id took up

        Raises:
            EOFError: the server closed the stream first
            ProtocolError: a VarInt was longer than 5 bytes
        """
        length = self.read_varint()
        start = self.bytes_read
        packet_id = self.read_varint()
        return length, packet_id, self.bytes_read - start

    def recv_body(self, length: int, id_size: int) -> bytes:
        """Reads the rest of a frame after its packet id"""
        remaining = length - id_size
        if remaining < 0 or length > MAX_PACKET_LENGTH:
            raise ProtocolError(ProtocolError.UNEXPECTED_VALUE)
        return self.read(remaining)

    def recv_packet(self, check: Callable[[int, int], None] = None) -> S2CPacket:
        """Reads a whole frame.

        Args:
            check (Callable, optional): Called with ``(length, packet_id)``
                before the body is read, may raise to abort

        Returns:
            S2CPacket: The packet, its buffer holds the body after the id
        """
        tStart = time.perf_counter()

        length, packet_id, id_size = self.recv_header()
        if check is not None:
            check(length, packet_id)
        p = S2CPacket(length, packet_id, self.recv_body(length, id_size))

        tEnd = time.perf_counter()
        self.logger.debug(
            f"Received packet: {hex(p.id)} in {tEnd - tStart:.2f} seconds"
        )

        return p
