import time
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as SchemaField
from sqlmodel import SQLModel, Field

BROADCAST = "Todos"

MESSAGE = "message"
PRIVATE_MESSAGE = "private_message"
STATUS = "status"

# types a participant may post; "status" is reserved for join/leave notices
POSTABLE_TYPES = (MESSAGE, PRIVATE_MESSAGE)

JOIN_TEXT = "entra na sala..."
LEAVE_TEXT = "sai da sala..."


def now_ms() -> int:
    return int(time.time() * 1000)


def format_time(ms: int) -> str:
    """Local wall-clock time of ``ms`` as HH:MM:SS."""
    return datetime.fromtimestamp(ms / 1000).strftime("%H:%M:%S")


class Participant(SQLModel, table=True):
    __tablename__ = "participants"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    # epoch milliseconds of the last heartbeat (or of registration)
    last_status: int = Field(index=True)


class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    sender: str = Field(index=True)
    to: str = Field(index=True)
    text: str
    type: str
    time: str


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------

class ParticipantIn(BaseModel):
    name: Optional[str] = None


class MessageIn(BaseModel):
    to: Optional[str] = None
    text: Optional[str] = None
    type: Optional[str] = None


class ParticipantOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    last_status: int = SchemaField(alias="lastStatus")

    @classmethod
    def from_row(cls, row: Participant) -> "ParticipantOut":
        return cls(name=row.name, last_status=row.last_status)


class MessageOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    sender: str = SchemaField(alias="from")
    to: str
    text: str
    type: str
    time: str

    @classmethod
    def from_row(cls, row: Message) -> "MessageOut":
        return cls(
            id=row.id,
            sender=row.sender,
            to=row.to,
            text=row.text,
            type=row.type,
            time=row.time,
        )
