import logging
from typing import List, Optional

from fastapi import APIRouter, status
from sqlalchemy import func
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from db import SessionDep
from errors import AuthorizationError, ValidationError
from models import Feedback, SwapRequest, SwapStatus, User
from schemas import FeedbackCreate, FeedbackRead, FeedbackWithDetails, SwapSummary, UserSummary
from .auth import CurrentUserDep
from .swaps import apply_transition, get_swap_or_404, is_participant

logger = logging.getLogger("SkillSwap.feedback")

router = APIRouter(tags=["feedback"])

Reviewer = aliased(User, name="reviewer")


def recompute_user_rating(session: Session, user_id: int) -> Optional[float]:
    """
    Set the user's rating to the mean of every feedback they ever received.
    A user without feedback keeps the rating they have. Caller commits.
    """
    average = session.exec(
        select(func.avg(Feedback.rating)).where(Feedback.reviewee_id == user_id)
    ).one()
    if average is None:
        return None

    user = session.get(User, user_id)
    if user is None:
        return None
    user.rating = float(average)
    session.add(user)
    return user.rating


@router.post("/submit", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
def submit_feedback(fb_in: FeedbackCreate, session: SessionDep, current: CurrentUserDep):
    """
    Rate the other side of a swap. The feedback row, the reviewee's new
    average and (with complete_swap) the swap completion commit together.
    """
    swap = get_swap_or_404(session, fb_in.swap_id)
    if not is_participant(swap, current.id):
        raise AuthorizationError("Not authorized to leave feedback for this swap")

    counterparty_id = swap.receiver_id if current.id == swap.sender_id else swap.sender_id
    if fb_in.reviewee_id != counterparty_id:
        raise ValidationError("Feedback must be about the other participant of the swap")

    if fb_in.complete_swap:
        apply_transition(swap, SwapStatus.COMPLETED, "Only accepted swaps can be completed")
        session.add(swap)

    feedback = Feedback(
        swap_id=swap.id,
        reviewer_id=current.id,
        reviewee_id=counterparty_id,
        rating=fb_in.rating,
        comment=fb_in.comment,
    )
    session.add(feedback)
    session.flush()

    new_rating = recompute_user_rating(session, counterparty_id)
    session.commit()
    session.refresh(feedback)

    logger.info(
        "User %s rated user %s %d on swap %s; average now %s",
        current.id, counterparty_id, feedback.rating, swap.id, new_rating,
    )
    return feedback


@router.get("/user/{user_id}", response_model=List[FeedbackWithDetails])
def list_user_feedback(user_id: int, session: SessionDep, current: CurrentUserDep):
    """
    Feedback received by a user, newest first, with reviewer and swap details.
    """
    stmt = (
        select(Feedback, Reviewer, SwapRequest)
        .join(Reviewer, Reviewer.id == Feedback.reviewer_id)
        .join(SwapRequest, SwapRequest.id == Feedback.swap_id)
        .where(Feedback.reviewee_id == user_id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
    )
    rows = session.exec(stmt).all()

    return [
        FeedbackWithDetails(
            id=fb.id,
            rating=fb.rating,
            comment=fb.comment,
            created_at=fb.created_at,
            reviewer=UserSummary.model_validate(reviewer),
            swap=SwapSummary(
                id=swap.id,
                offered_skill=swap.offered_skill,
                requested_skill=swap.requested_skill,
            ),
        )
        for fb, reviewer, swap in rows
    ]
