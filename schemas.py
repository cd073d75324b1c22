from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models import MessageType, SwapStatus


# --- users / auth

class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    location: Optional[str] = None
    availability: Optional[str] = None
    skills_offered: List[str] = Field(default_factory=list)
    skills_wanted: List[str] = Field(default_factory=list)
    profile_photo: Optional[str] = None
    is_public: bool = True


class UserUpdate(BaseModel):
    """Partial profile update. Password and account flags are not editable here."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    location: Optional[str] = None
    availability: Optional[str] = None
    skills_offered: Optional[List[str]] = None
    skills_wanted: Optional[List[str]] = None
    profile_photo: Optional[str] = None
    is_public: Optional[bool] = None


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    location: Optional[str] = None
    availability: Optional[str] = None
    skills_offered: List[str]
    skills_wanted: List[str]
    profile_photo: Optional[str] = None
    rating: float
    is_public: bool
    is_admin: bool
    is_banned: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    profile_photo: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LoginData(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthResponse(BaseModel):
    message: str
    user: UserRead
    token: str
    is_admin: bool = False


class ProfilePhotoResponse(BaseModel):
    message: str
    user: UserRead


# --- swaps

class SwapCreate(BaseModel):
    receiver_id: int
    offered_skill: str = Field(min_length=1)
    requested_skill: str = Field(min_length=1)
    message: Optional[str] = Field(default=None, max_length=1000)


class SwapRespond(BaseModel):
    # Checked by the handler so the error reads "Invalid status"
    status: str


class SwapRead(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    offered_skill: str
    requested_skill: str
    status: SwapStatus
    message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SwapWithUsers(BaseModel):
    id: int
    offered_skill: str
    requested_skill: str
    status: SwapStatus
    message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    sender: UserSummary
    receiver: UserSummary


# --- feedback

class FeedbackCreate(BaseModel):
    swap_id: int
    reviewee_id: int
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=1000)
    # Completes the (accepted) swap in the same transaction as the feedback
    complete_swap: bool = False


class FeedbackRead(BaseModel):
    id: int
    swap_id: int
    reviewer_id: int
    reviewee_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SwapSummary(BaseModel):
    id: int
    offered_skill: str
    requested_skill: str


class FeedbackWithDetails(BaseModel):
    id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    reviewer: UserSummary
    swap: SwapSummary


# --- platform messages

class BroadcastCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    type: MessageType = MessageType.INFO


class PlatformMessageRead(BaseModel):
    id: int
    title: str
    message: str
    type: MessageType
    created_by: int
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --- admin

class SkillEntry(BaseModel):
    user_id: int
    user_name: str
    user_email: str
    type: Literal["offered", "wanted"]
    skill: str


class SkillRemove(BaseModel):
    skill: str = Field(min_length=1)
    type: Literal["offered", "wanted"]


class UsersReport(BaseModel):
    total_users: int
    active_users: int
    banned_users: int
    admin_users: int
    public_users: int
    rated_users: int
    average_rating: float


class SwapsReport(BaseModel):
    total_swaps: int
    pending: int
    accepted: int
    rejected: int
    completed: int
    completion_rate: float


class FeedbackReport(BaseModel):
    total_feedback: int
    average_rating: float
    distribution: Dict[str, int]


class MessageResponse(BaseModel):
    message: str
