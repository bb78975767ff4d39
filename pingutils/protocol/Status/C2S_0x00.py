from ...protocol.packet import BasePacket, States


class C2S_0x00(BasePacket):
    """
    Status Request (0x00)

    Always the two literal bytes ``01 00``: frame size 1, packet id 0x00.

    Data:
        - None
    """

    RAW = bytes([0x01, 0x00])

    def _info(self):
        return {
            "name": "Status Request",
            "id": 0x00,
            "state": States.STATUS,
        }

    def _dataTypes(self):
        return {}

    def toBytes(self):
        return self.RAW
