"""Admin API: user moderation, skill moderation, broadcasts and reports."""

import csv
import io
import logging
from typing import Dict, List

from fastapi import APIRouter, Response, status
from sqlalchemy import case, func
from sqlmodel import Session, select

from db import SessionDep
from errors import AuthError, NotFoundError, ValidationError
from models import Feedback, SwapRequest, SwapStatus, User
from schemas import (
    AuthResponse,
    BroadcastCreate,
    FeedbackReport,
    LoginData,
    MessageResponse,
    PlatformMessageRead,
    SkillEntry,
    SkillRemove,
    SwapWithUsers,
    SwapsReport,
    UserRead,
    UsersReport,
)
from .auth import AdminDep, authenticate, issue_auth_response
from .messages import create_platform_message
from .swaps import load_swaps_with_users

logger = logging.getLogger("SkillSwap.admin")

router = APIRouter(tags=["admin"])

REPORT_TYPES = ("users", "swaps", "feedback")


def _get_user_or_404(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _count_if(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


# --- Auth

@router.post("/login", response_model=AuthResponse)
def admin_login(payload: LoginData, session: SessionDep):
    """Log in to the admin dashboard. Non-admin accounts are refused."""
    user = authenticate(session, payload)
    if not user.is_admin:
        logger.info("Non-admin user %s tried the admin login", user.id)
        raise AuthError("Not authorized as admin", status_code=status.HTTP_403_FORBIDDEN)
    return issue_auth_response(user, "Admin login successful", is_admin=True)


# --- Users

@router.get("/users", response_model=List[UserRead])
def list_users(session: SessionDep, admin: AdminDep):
    return session.exec(select(User).order_by(User.created_at.desc(), User.id.desc())).all()


@router.patch("/users/{user_id}/ban", response_model=MessageResponse)
def ban_user(user_id: int, session: SessionDep, admin: AdminDep):
    if user_id == admin.id:
        raise ValidationError("Cannot ban yourself")

    user = _get_user_or_404(session, user_id)
    user.is_banned = True
    session.add(user)
    session.commit()

    logger.info("Admin %s banned user %s", admin.id, user_id)
    return MessageResponse(message="User banned successfully")


@router.patch("/users/{user_id}/unban", response_model=MessageResponse)
def unban_user(user_id: int, session: SessionDep, admin: AdminDep):
    user = _get_user_or_404(session, user_id)
    user.is_banned = False
    session.add(user)
    session.commit()

    logger.info("Admin %s unbanned user %s", admin.id, user_id)
    return MessageResponse(message="User unbanned successfully")


# --- Skills

@router.get("/skills", response_model=List[SkillEntry])
def list_skills(session: SessionDep, admin: AdminDep):
    """Every skill of every user, flattened with the owner's identity."""
    skills = []
    for user in session.exec(select(User).order_by(User.id)).all():
        for skill in user.skills_offered or []:
            skills.append(
                SkillEntry(user_id=user.id, user_name=user.name, user_email=user.email,
                           type="offered", skill=skill)
            )
        for skill in user.skills_wanted or []:
            skills.append(
                SkillEntry(user_id=user.id, user_name=user.name, user_email=user.email,
                           type="wanted", skill=skill)
            )
    return skills


@router.delete("/skills/{user_id}", response_model=MessageResponse)
def remove_skill(user_id: int, body: SkillRemove, session: SessionDep, admin: AdminDep):
    """
    Remove a skill from one of the user's lists. Matching is by exact string,
    so every identical entry in that list goes.
    """
    user = _get_user_or_404(session, user_id)

    if body.type == "offered":
        user.skills_offered = [s for s in user.skills_offered or [] if s != body.skill]
    else:
        user.skills_wanted = [s for s in user.skills_wanted or [] if s != body.skill]

    session.add(user)
    session.commit()

    logger.info("Admin %s removed %s skill %r from user %s", admin.id, body.type, body.skill, user_id)
    return MessageResponse(message="Skill removed successfully")


# --- Swaps

@router.get("/swaps", response_model=List[SwapWithUsers])
def list_all_swaps(session: SessionDep, admin: AdminDep):
    return load_swaps_with_users(session)


# --- Broadcasts

@router.post("/messages/broadcast", response_model=PlatformMessageRead, status_code=status.HTTP_201_CREATED)
def broadcast_message(data: BroadcastCreate, session: SessionDep, admin: AdminDep):
    msg = create_platform_message(session, data, admin)
    logger.info("Admin %s broadcast message %s (%s)", admin.id, msg.id, msg.type.value)
    return msg


# --- Reports

def build_users_report(session: Session) -> UsersReport:
    total, banned, admins, public, rated, avg_rating = session.exec(
        select(
            func.count(User.id),
            _count_if(User.is_banned == True),  # noqa: E712
            _count_if(User.is_admin == True),  # noqa: E712
            _count_if(User.is_public == True),  # noqa: E712
            _count_if(User.rating > 0),
            func.avg(case((User.rating > 0, User.rating), else_=None)),
        )
    ).one()
    return UsersReport(
        total_users=total,
        active_users=total - banned,
        banned_users=banned,
        admin_users=admins,
        public_users=public,
        rated_users=rated,
        average_rating=round(float(avg_rating or 0), 2),
    )


def build_swaps_report(session: Session) -> SwapsReport:
    rows = session.exec(
        select(SwapRequest.status, func.count(SwapRequest.id)).group_by(SwapRequest.status)
    ).all()
    counts: Dict[str, int] = {s.value: 0 for s in SwapStatus}
    for swap_status, count in rows:
        counts[SwapStatus(swap_status).value] = count

    total = sum(counts.values())
    completion_rate = counts["completed"] / total if total else 0.0
    return SwapsReport(total_swaps=total, completion_rate=round(completion_rate, 4), **counts)


def build_feedback_report(session: Session) -> FeedbackReport:
    rows = session.exec(
        select(Feedback.rating, func.count(Feedback.id)).group_by(Feedback.rating)
    ).all()
    distribution = {str(r): 0 for r in range(1, 6)}
    total = 0
    weighted = 0
    for rating, count in rows:
        distribution[str(rating)] = count
        total += count
        weighted += rating * count

    return FeedbackReport(
        total_feedback=total,
        average_rating=round(weighted / total, 2) if total else 0.0,
        distribution=distribution,
    )


@router.get("/reports/users", response_model=UsersReport)
def users_report(session: SessionDep, admin: AdminDep):
    return build_users_report(session)


@router.get("/reports/swaps", response_model=SwapsReport)
def swaps_report(session: SessionDep, admin: AdminDep):
    return build_swaps_report(session)


@router.get("/reports/feedback", response_model=FeedbackReport)
def feedback_report(session: SessionDep, admin: AdminDep):
    return build_feedback_report(session)


def _users_csv_rows(session: Session):
    yield ["id", "name", "email", "location", "availability", "skills_offered",
           "skills_wanted", "rating", "is_public", "is_admin", "is_banned", "created_at"]
    for u in session.exec(select(User).order_by(User.id)).all():
        yield [u.id, u.name, u.email, u.location or "", u.availability or "",
               "; ".join(u.skills_offered or []), "; ".join(u.skills_wanted or []),
               u.rating, u.is_public, u.is_admin, u.is_banned, u.created_at.isoformat()]


def _swaps_csv_rows(session: Session):
    yield ["id", "sender_id", "sender_name", "receiver_id", "receiver_name", "offered_skill",
           "requested_skill", "status", "message", "created_at", "updated_at"]
    for s in reversed(load_swaps_with_users(session)):
        yield [s.id, s.sender.id, s.sender.name, s.receiver.id, s.receiver.name, s.offered_skill,
               s.requested_skill, s.status.value, s.message or "",
               s.created_at.isoformat(), s.updated_at.isoformat()]


def _feedback_csv_rows(session: Session):
    yield ["id", "swap_id", "reviewer_id", "reviewee_id", "rating", "comment", "created_at"]
    for f in session.exec(select(Feedback).order_by(Feedback.id)).all():
        yield [f.id, f.swap_id, f.reviewer_id, f.reviewee_id, f.rating, f.comment or "",
               f.created_at.isoformat()]


CSV_BUILDERS = {
    "users": _users_csv_rows,
    "swaps": _swaps_csv_rows,
    "feedback": _feedback_csv_rows,
}


@router.get("/reports/download/{report_type}")
def download_report(report_type: str, session: SessionDep, admin: AdminDep):
    """Download the rows behind a report as CSV."""
    builder = CSV_BUILDERS.get(report_type)
    if builder is None:
        raise ValidationError(f"Unknown report type; expected one of {', '.join(REPORT_TYPES)}")

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerows(builder(session))

    logger.info("Admin %s downloaded the %s report", admin.id, report_type)
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{report_type}-report.csv"'},
    )
