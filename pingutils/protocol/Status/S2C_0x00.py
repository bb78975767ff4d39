from ...protocol.packet import BasePacket, States, DataTypes


class S2C_0x00(BasePacket):
    """
    Status Response Packet (0x00)

    Only used as a descriptor of what the server sends; the connector reads it.

    Data:
        - JSON Response | String (32767) | See (Server List Ping#Status Response)[https://wiki.vg/Server_List_Ping#Status_Response]; as with all strings, this is prefixed by its length as a VarInt.
    """

    def _info(self):
        return {
            "name": "Status Response",
            "id": 0x00,
            "state": States.STATUS,
        }

    def _dataTypes(self):
        return {
            "json_response": DataTypes.STRING,
        }
