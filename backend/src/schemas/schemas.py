from pydantic import BaseModel, ConfigDict, Field

from utilities import ROOM_MAX_LENGTH, USERNAME_MAX_LENGTH

class Message(BaseModel):
    ''' A chat message; frozen so one instance can be shared by every subscriber.'''

    model_config = ConfigDict(frozen=True)

    room: str = Field(..., max_length=ROOM_MAX_LENGTH)
    username: str = Field(..., max_length=USERNAME_MAX_LENGTH)
    message: str
