from .directory import Directory
from .room_state import (
    MAX_ROOM_MEMBERS,
    PRIMARY_ROOM_ID,
    PRIMARY_ROOM_NAME,
    SessionRegistry,
)


class RelayStore:
    """
    Holds all in-memory state for a relay process.

    Responsibilities:
    - Own the Directory of online users
    - Own the SessionRegistry of rooms

    Created once at process start and passed to every component.
    """

    def __init__(
        self,
        primary_room_id: str = PRIMARY_ROOM_ID,
        primary_room_name: str = PRIMARY_ROOM_NAME,
        max_room_members: int = MAX_ROOM_MEMBERS,
    ):
        self.directory = Directory()
        self.registry = SessionRegistry(
            primary_room_id, primary_room_name, max_room_members
        )
