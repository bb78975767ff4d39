from . import Handshake, Status, packet
from .connector import MCSocket
from .packet import Packet, S2CPacket, BasePacket, States, DataTypes, PROTOCOL_VERSION
