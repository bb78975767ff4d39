import struct
from ctypes import c_int32 as signed_int32
from ctypes import c_uint32 as unsigned_int32

from ..errors import ProtocolError

PROTOCOL_VERSION = 4


class States:
    HANDSHAKE = 0
    STATUS = 1


class DataTypes:
    VARINT = "VarInt"
    STRING = "String"
    USHORT = "Unsigned Short"
    LONG = "Long"


# https://wiki.vg/Protocol#Packet_format
class Packet:
    """A byte buffer that is consumed from the front."""

    __slots__ = ("__data",)

    def __init__(self, data: bytes = b""):
        self.__data = bytes(data)

    def __repr__(self):
        return f"Packet({self.__data!r})"

    def __len__(self):
        return len(self.__data)

    def write(self, data: bytes):
        self.__data += data

    def read(self, length: int) -> bytes:
        """Consume exactly ``length`` bytes.

        :raises EOFError: If fewer bytes are buffered.
        """
        if length > len(self.__data):
            raise EOFError(
                f"Buffer ended with {length - len(self.__data)} bytes remaining"
            )
        result = self.__data[:length]
        self.__data = self.__data[length:]
        return result

    @staticmethod
    def encode_varint(value: int) -> bytes:
        """Encode ``value`` as a VarInt.

        :param value: The Maximum is ``2 ** 32-1`` the minimum is ``-(2 ** 31)``.
            Negative values are written as their 32-bit two's complement.
        :raises ValueError: If value is out of range.
        """
        if value > 2**32 - 1 or value < -(2**31):
            raise ValueError(f'The value "{value}" is too big to send in a varint')

        remaining = unsigned_int32(value).value
        out = b""
        while remaining & ~0x7F:
            out += struct.pack("!B", remaining & 0x7F | 0x80)
            remaining >>= 7
        return out + struct.pack("!B", remaining)

    @staticmethod
    def decode_varint(stream) -> int:
        """Read a VarInt from anything with a ``read(n)`` method.

        :return: The value as a signed 32-bit int.
        :raises EOFError: If the stream ends inside the VarInt.
        :raises ProtocolError: If the VarInt is longer than 5 bytes.
        """
        result = 0
        for i in range(5):
            part = stream.read(1)
            if not part:
                raise EOFError("Stream ended inside a VarInt")

            part = part[0]
            result |= (part & 0x7F) << 7 * i
            if not part & 0x80:
                return signed_int32(result).value
        raise ProtocolError("VarInt too big")

    @classmethod
    def frame(cls, packet_id: int, payload: bytes = b"") -> bytes:
        """Prefix ``VarInt(packet_id) + payload`` with its VarInt length."""
        body = cls.encode_varint(packet_id) + payload
        return cls.encode_varint(len(body)) + body

    def encode_string(self, string: str, charset: str = "utf-8") -> bytes:
        """Encode ``string`` prefixed by its byte length.

        :param string: The string to write.
        :param charset: The encoding of the raw bytes.
        """
        raw = string.encode(charset)
        return self.encode_varint(len(raw)) + raw

    @staticmethod
    def encode_ushort(value: int) -> bytes:
        """Encode an unsigned short.

        :param value: The Maximum is 2 ** 16-1 `` the minimum is 0.
        :raises ValueError: If value is out of range.
        """
        if value < 0 or value > 2**16 - 1:
            raise ValueError(f"The value {value} is out of range for an unsigned short")
        return struct.pack("!H", value)

    @staticmethod
    def encode_long(value: int) -> bytes:
        """Encode a signed big-endian long.

        :param value: The Maximum is ``2 ** 63-1 `` the minimum is ``-(2 ** 63)``.
        :raises ValueError: If value is out of range.
        """
        if value < -(2**63) or value > 2**63 - 1:
            raise ValueError(f"The value {value} is out of range for a long")
        return struct.pack("!q", value)

    def read_varint(self) -> int:
        return self.decode_varint(self)

    def read_string(self, charset: str = "utf-8") -> str:
        length = self.read_varint()
        return self.read(length).decode(charset)

    def read_ushort(self) -> int:
        return struct.unpack("!H", self.read(2))[0]

    def read_long(self) -> int:
        return struct.unpack("!q", self.read(8))[0]


class S2CPacket(Packet):
    """A packet received from the server.

    ``length`` is the declared frame length, ``id`` the decoded packet id and
    the buffer holds the rest of the body.
    """

    __slots__ = ("length", "id")

    def __init__(self, length: int, packet_id: int, body: bytes = b""):
        super().__init__(body)
        self.length = length
        self.id = packet_id

    def __repr__(self):
        return f"S2CPacket(length={self.length}, id={hex(self.id)}, remaining={len(self)})"


class BasePacket(Packet):
    """Base for the packet definitions in Handshake/ and Status/.

    Subclasses describe themselves through ``_info`` and ``_dataTypes``;
    field values are passed as keyword arguments.

    Data:
        - FieldName | FieldType | Notes
    """

    __slots__ = ("fields", "name", "id", "state")

    def __init__(self, **kwargs):
        super().__init__()
        self.fields = kwargs
        self.name = self._info()["name"]
        self.id = self._info()["id"]
        self.state = self._info()["state"]

    def _info(self):
        return {
            "name": "Example Packet",
            "id": 0xFF,
            "state": States.STATUS,
        }

    def _dataTypes(self):
        return {}

    def __str__(self):
        return f"{self.name}({', '.join([f'{k}={v}' for k, v in self.fields.items()]) if self.fields else ''})"

    def toDict(self):
        return {
            "id": self.id,
            "name": self.name,
            "data": self.fields,
        }

    def payload(self) -> bytes:
        b = b""

        for k, v in self._dataTypes().items():
            match v:
                case DataTypes.VARINT:
                    b += self.encode_varint(self.fields[k])
                case DataTypes.STRING:
                    b += self.encode_string(self.fields[k])
                case DataTypes.USHORT:
                    b += self.encode_ushort(self.fields[k])
                case DataTypes.LONG:
                    b += self.encode_long(self.fields[k])
                case _:
                    raise ValueError(f"Unknown data type: {v}")

        return b

    def toBytes(self) -> bytes:
        return self.frame(self.id, self.payload())
