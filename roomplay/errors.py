class RoomplayError(Exception):
    pass


class MalformedMessageError(RoomplayError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed message: {detail}")


class UnknownConnectionError(RoomplayError):
    def __init__(self, conn_id: str):
        self.conn_id = conn_id
        super().__init__(f"Connection '{conn_id}' is not registered")


class RoomNotFoundError(RoomplayError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room '{room_id}' not found")
