from ...protocol.packet import BasePacket, States, DataTypes


class C2S_0x00(BasePacket):
    """
    Handshake packet (0x00) sent by the client to the server.

    Data:
        - Protocol Version | VarInt | 4 for the status probe.
        - Server Address | String (255) | Hostname or IP that was used to connect, prefixed by its byte length.
        - Server Port | Unsigned Short | Default is 25565.
        - Next State | VarInt Enum | 1 for Status.
    """

    def _info(self):
        return {
            "name": "Handshake (0x00)",
            "id": 0x00,
            "state": States.HANDSHAKE,
        }

    def _dataTypes(self):
        return {
            "protocol_version": DataTypes.VARINT,
            "server_address": DataTypes.STRING,
            "server_port": DataTypes.USHORT,
            "next_state": DataTypes.VARINT,
        }
