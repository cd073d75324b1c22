# routers/users.py
import base64
import logging
from typing import List, Optional

from fastapi import APIRouter, File, Query, UploadFile
from sqlalchemy import exists, func, or_
from sqlmodel import Session, select

from .auth import CurrentUserDep
from db import SessionDep
from errors import NotFoundError, ValidationError
from models import User
from schemas import ProfilePhotoResponse, UserRead, UserUpdate

logger = logging.getLogger("SkillSwap.users")

router = APIRouter(tags=["users"])

MAX_PHOTO_BYTES = 5 * 1024 * 1024


def like_pattern(term: str) -> str:
    """Build a '%term%' LIKE pattern with the wildcards in term escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def skill_list_matches(session: Session, column, pattern: str):
    """EXISTS over the elements of a JSON skill list, LIKE on each lowercased element."""
    if session.get_bind().dialect.name == "postgresql":
        elements = func.json_array_elements_text(column).table_valued("value")
    else:
        elements = func.json_each(column).table_valued("value")
    return exists().select_from(elements).where(
        func.lower(elements.c.value).like(pattern, escape="\\")
    )


def search_users(
    session: SessionDep,
    skill: Optional[str] = None,
    location: Optional[str] = None,
    availability: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
) -> List[User]:
    """
    Public, non-banned users matching every supplied filter, best rated first.
    The skill filter matches either the offered or the wanted list.
    """
    query = select(User).where(
        User.is_public == True,  # noqa: E712
        User.is_banned == False,  # noqa: E712
    )

    if skill:
        pattern = like_pattern(skill.lower())
        query = query.where(
            or_(
                skill_list_matches(session, User.skills_offered, pattern),
                skill_list_matches(session, User.skills_wanted, pattern),
            )
        )

    if location:
        query = query.where(User.location.ilike(like_pattern(location), escape="\\"))

    if availability:
        query = query.where(User.availability.ilike(like_pattern(availability), escape="\\"))

    query = query.order_by(User.rating.desc(), User.id).offset(offset).limit(limit)
    return session.exec(query).all()


@router.get("/profile", response_model=UserRead)
def get_profile(current: CurrentUserDep):
    return current


@router.put("/profile", response_model=UserRead)
def update_profile(update: UserUpdate, session: SessionDep, current: CurrentUserDep):
    """
    Update the caller's own profile. Only the fields present in the body change;
    skill lists are replaced as given, order preserved.
    """
    data = update.model_dump(exclude_unset=True)
    for key, value in data.items():
        if value is None:
            if key in ("name", "is_public"):
                continue
            if key in ("skills_offered", "skills_wanted"):
                value = []
        setattr(current, key, value)

    session.add(current)
    session.commit()
    session.refresh(current)
    logger.info("User %s updated profile fields %s", current.id, sorted(data))
    return current


@router.post("/profile-photo", response_model=ProfilePhotoResponse)
async def upload_profile_photo(
    session: SessionDep,
    current: CurrentUserDep,
    photo: UploadFile = File(...),
):
    """
    Store an uploaded image on the user record as a data URI.
    """
    content_type = photo.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError("Only image files are allowed")

    # Read one byte past the limit so oversized files are detected without loading them whole
    content = await photo.read(MAX_PHOTO_BYTES + 1)
    if not content:
        raise ValidationError("No file uploaded")
    if len(content) > MAX_PHOTO_BYTES:
        raise ValidationError("File too large. Maximum size is 5MB.")

    encoded = base64.b64encode(content).decode("ascii")
    current.profile_photo = f"data:{content_type};base64,{encoded}"
    session.add(current)
    session.commit()
    session.refresh(current)

    logger.info("User %s uploaded a %d byte profile photo", current.id, len(content))
    return ProfilePhotoResponse(
        message="Profile photo updated successfully",
        user=UserRead.model_validate(current),
    )


@router.get("/search", response_model=List[UserRead])
def search(
    session: SessionDep,
    current: CurrentUserDep,
    skill: Optional[str] = None,
    location: Optional[str] = None,
    availability: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """
    Search public profiles by skill, location and availability.
    """
    users = search_users(
        session,
        skill=skill,
        location=location,
        availability=availability,
        limit=limit,
        offset=(page - 1) * limit,
    )
    logger.debug(
        "Search skill=%r location=%r availability=%r page=%d returned %d users",
        skill, location, availability, page, len(users),
    )
    return users


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, session: SessionDep, current: CurrentUserDep):
    """
    Get a single user by ID. Hidden and banned profiles are only visible
    to their owner and to admins.
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    visible = user.is_public and not user.is_banned
    if not visible and user.id != current.id and not current.is_admin:
        raise NotFoundError("User not found")

    return user
