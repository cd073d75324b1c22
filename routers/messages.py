from typing import List, Optional

from fastapi import APIRouter, Query
from sqlmodel import Session, select

from db import SessionDep
from models import PlatformMessage, User
from schemas import BroadcastCreate, PlatformMessageRead
from .auth import CurrentUserDep

router = APIRouter(tags=["messages"])


def create_platform_message(session: Session, data: BroadcastCreate, author: User) -> PlatformMessage:
    msg = PlatformMessage(
        title=data.title,
        message=data.message,
        type=data.type,
        created_by=author.id,
        is_active=True,
    )
    session.add(msg)
    session.commit()
    session.refresh(msg)
    return msg


@router.get("", response_model=List[PlatformMessageRead])
def list_messages(
    session: SessionDep,
    current: CurrentUserDep,
    after_id: Optional[int] = Query(None, ge=0),
):
    """
    Active platform broadcasts, newest first.

    Read state lives on the client: pass the last seen message id as
    after_id to get only the unread ones.
    """
    query = select(PlatformMessage).where(PlatformMessage.is_active == True)  # noqa: E712
    if after_id is not None:
        query = query.where(PlatformMessage.id > after_id)
    query = query.order_by(PlatformMessage.created_at.desc(), PlatformMessage.id.desc())
    return session.exec(query).all()
