"""Room record schema as delivered by the room feed."""

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.domain.room_state import RoomStatus


class Room(BaseModel):
    """Room fields the availability engine reads."""

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)
    status: RoomStatus
