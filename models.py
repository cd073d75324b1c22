from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column, DateTime, Text
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SwapStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class MessageType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    UPDATE = "update"
    MAINTENANCE = "maintenance"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    password_hash: str

    location: Optional[str] = None
    availability: Optional[str] = None
    # Lists are replaced wholesale on update, never mutated in place
    skills_offered: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    skills_wanted: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    profile_photo: Optional[str] = Field(default=None, sa_column=Column(Text))

    rating: float = 0.0
    is_public: bool = True
    is_admin: bool = False
    is_banned: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class SwapRequest(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    sender_id: int = Field(foreign_key="user.id", index=True)
    receiver_id: int = Field(foreign_key="user.id", index=True)

    offered_skill: str
    requested_skill: str
    status: SwapStatus = SwapStatus.PENDING  # pending | accepted | rejected | completed
    message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Feedback(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    swap_id: int = Field(foreign_key="swaprequest.id", index=True)
    reviewer_id: int = Field(foreign_key="user.id")
    reviewee_id: int = Field(foreign_key="user.id", index=True)

    rating: int
    comment: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class PlatformMessage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    message: str = Field(sa_column=Column(Text, nullable=False))
    type: MessageType = MessageType.INFO
    created_by: int = Field(foreign_key="user.id")
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
