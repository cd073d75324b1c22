import logging
from typing import List, Optional

from fastapi import APIRouter, status
from sqlalchemy import or_
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from db import SessionDep
from errors import AuthorizationError, NotFoundError, ValidationError
from models import SwapRequest, SwapStatus, User, utcnow
from schemas import SwapCreate, SwapRead, SwapRespond, SwapWithUsers, UserSummary
from .auth import CurrentUserDep

logger = logging.getLogger("SkillSwap.swaps")

router = APIRouter(tags=["swaps"])

# pending -> accepted -> completed, pending -> rejected; rejected and completed are terminal
ALLOWED_TRANSITIONS = {
    SwapStatus.PENDING: {SwapStatus.ACCEPTED, SwapStatus.REJECTED},
    SwapStatus.ACCEPTED: {SwapStatus.COMPLETED},
    SwapStatus.REJECTED: set(),
    SwapStatus.COMPLETED: set(),
}

RESPONSE_STATUSES = {SwapStatus.ACCEPTED.value, SwapStatus.REJECTED.value}

Sender = aliased(User, name="sender")
Receiver = aliased(User, name="receiver")


def apply_transition(swap: SwapRequest, new_status: SwapStatus, error_detail: str) -> None:
    """Move swap to new_status or raise ValidationError(error_detail). Caller commits."""
    if new_status not in ALLOWED_TRANSITIONS[SwapStatus(swap.status)]:
        raise ValidationError(error_detail)
    swap.status = new_status
    swap.updated_at = utcnow()


def is_participant(swap: SwapRequest, user_id: Optional[int]) -> bool:
    return user_id in (swap.sender_id, swap.receiver_id)


def get_swap_or_404(session: Session, swap_id: int) -> SwapRequest:
    swap = session.get(SwapRequest, swap_id)
    if swap is None:
        raise NotFoundError("Swap request not found")
    return swap


def load_swaps_with_users(session: Session, user_id: Optional[int] = None) -> List[SwapWithUsers]:
    """
    Swaps joined with sender and receiver summaries, newest first.
    Restricted to swaps the user takes part in when user_id is given.
    """
    stmt = (
        select(SwapRequest, Sender, Receiver)
        .join(Sender, Sender.id == SwapRequest.sender_id)
        .join(Receiver, Receiver.id == SwapRequest.receiver_id)
    )
    if user_id is not None:
        stmt = stmt.where(
            or_(SwapRequest.sender_id == user_id, SwapRequest.receiver_id == user_id)
        )
    stmt = stmt.order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())

    rows = session.exec(stmt).all()
    formatted = []
    for swap, sender, receiver in rows:
        formatted.append(
            SwapWithUsers(
                id=swap.id,
                offered_skill=swap.offered_skill,
                requested_skill=swap.requested_skill,
                status=swap.status,
                message=swap.message,
                created_at=swap.created_at,
                updated_at=swap.updated_at,
                sender=UserSummary.model_validate(sender),
                receiver=UserSummary.model_validate(receiver),
            )
        )
    return formatted


@router.post("/send", response_model=SwapRead, status_code=status.HTTP_201_CREATED)
def send_swap_request(swap_in: SwapCreate, session: SessionDep, current: CurrentUserDep):
    """
    Propose a skill exchange to another user. Starts out pending.
    """
    if swap_in.receiver_id == current.id:
        raise ValidationError("Cannot send swap request to yourself")

    receiver = session.get(User, swap_in.receiver_id)
    if receiver is None:
        raise NotFoundError("Receiver not found")

    swap = SwapRequest(
        sender_id=current.id,
        receiver_id=swap_in.receiver_id,
        offered_skill=swap_in.offered_skill,
        requested_skill=swap_in.requested_skill,
        message=swap_in.message,
        status=SwapStatus.PENDING,
    )
    session.add(swap)
    session.commit()
    session.refresh(swap)

    logger.info("Swap %s sent from user %s to user %s", swap.id, swap.sender_id, swap.receiver_id)
    return swap


@router.patch("/{swap_id}/respond", response_model=SwapRead)
def respond_to_swap(
    swap_id: int,
    update: SwapRespond,
    session: SessionDep,
    current: CurrentUserDep,
):
    """
    Accept or reject a pending request. Only the receiver may answer.
    """
    if update.status not in RESPONSE_STATUSES:
        raise ValidationError("Invalid status")

    swap = get_swap_or_404(session, swap_id)
    if swap.receiver_id != current.id:
        raise AuthorizationError("Not authorized to respond to this request")

    apply_transition(
        swap,
        SwapStatus(update.status),
        "Only pending swap requests can be answered",
    )
    session.add(swap)
    session.commit()
    session.refresh(swap)

    logger.info("Swap %s %s by user %s", swap.id, swap.status.value, current.id)
    return swap


@router.patch("/{swap_id}/complete", response_model=SwapRead)
def complete_swap(swap_id: int, session: SessionDep, current: CurrentUserDep):
    """
    Mark an accepted swap as completed. Either participant may do it.
    """
    swap = get_swap_or_404(session, swap_id)
    if not is_participant(swap, current.id):
        raise AuthorizationError("Not authorized to complete this swap")

    apply_transition(swap, SwapStatus.COMPLETED, "Only accepted swaps can be completed")
    session.add(swap)
    session.commit()
    session.refresh(swap)

    logger.info("Swap %s completed by user %s", swap.id, current.id)
    return swap


@router.get("/list", response_model=List[SwapWithUsers])
def list_my_swaps(session: SessionDep, current: CurrentUserDep):
    """
    All swaps the caller sent or received, newest first.
    """
    return load_swaps_with_users(session, user_id=current.id)


@router.get("/{swap_id}", response_model=SwapRead)
def get_swap(swap_id: int, session: SessionDep, current: CurrentUserDep):
    swap = get_swap_or_404(session, swap_id)
    if not is_participant(swap, current.id) and not current.is_admin:
        raise AuthorizationError("Not authorized to view this swap")
    return swap
