from ...protocol.packet import BasePacket, States, DataTypes


class C2S_0x01(BasePacket):
    """
    Ping Request (0x01)

    Written as ``09 01`` followed by the 8 byte payload.

    Data:
        - Payload | Long | Current time in milliseconds
    """

    HEADER = bytes([0x09, 0x01])

    def _info(self):
        return {
            "name": "Ping Request",
            "id": 0x01,
            "state": States.STATUS,
        }

    def _dataTypes(self):
        return {
            "payload": DataTypes.LONG,
        }

    def toBytes(self):
        return self.HEADER + self.payload()
