"""
app.schemas
~~~~~~~~~~~
Pydantic schemas and models for the API.
"""
from app.schemas.api_response import ApiResponse
from app.schemas.room_events import (
    ActionCompleted,
    RoomEvent,
    RoomEventKind,
    RoomStarted,
    RoomUpdate,
    SeatAdded,
    SeatInfo,
    SeatRemoved,
)
from app.schemas.rooms import (
    ActionRequest,
    AddSeatRequest,
    CreateRoomData,
    StartRoomRequest,
    SwitchSeatRequest,
)

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()
