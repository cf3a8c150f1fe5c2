"""Producers for the non-reminder email types.

These are called by the project and application flows when a project is
published or an application is reviewed. Each respects its own preference
flag; ``deadline_reminders`` plays no part here.
"""
from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from fpcp.models import (
    EmailPreference,
    MemberStatus,
    Profile,
    Project,
    ProjectMember,
    QueuedEmail,
    TemplateType,
    UserRole,
    preference_enabled,
)


def _preference_for(session: Session, user_id: int) -> Optional[EmailPreference]:
    return session.scalars(
        select(EmailPreference).where(EmailPreference.user_id == user_id)
    ).first()


def enqueue_new_project(session: Session, project: Project) -> int:
    """Queue a ``new_project`` email to every freelancer who wants one.

    Returns:
        Number of emails queued.
    """
    freelancers = session.scalars(
        select(Profile).where(
            Profile.role == UserRole.freelancer,
            Profile.id != project.owner_id,
            Profile.email.is_not(None),
        )
    ).all()
    preferences = {
        pref.user_id: pref
        for pref in session.scalars(
            select(EmailPreference).where(
                EmailPreference.user_id.in_([f.id for f in freelancers])
            )
        ).all()
    }

    queued = 0
    for freelancer in freelancers:
        if not freelancer.email:
            continue
        if not preference_enabled(preferences.get(freelancer.id), "new_projects"):
            continue
        session.add(
            QueuedEmail(
                to_email=freelancer.email,
                subject=f"New Project: {project.title}",
                body=project.description,
                template_type=TemplateType.new_project,
                payload={
                    "project_id": project.id,
                    "project_title": project.title,
                    "project_description": project.description,
                    "required_skills": project.required_skills,
                    "to_email": freelancer.email,
                },
            )
        )
        queued += 1

    session.commit()
    logger.info(f"Project {project.id}: queued {queued} new project emails")
    return queued


def enqueue_application_status(
    session: Session, member: ProjectMember
) -> Optional[QueuedEmail]:
    """Queue an ``application_status`` email for a reviewed application.

    Nothing is queued while the application is still pending, when the
    applicant has no address, or when ``application_updates`` is off.
    """
    if member.status == MemberStatus.pending:
        return None

    applicant = session.get(Profile, member.user_id)
    if applicant is None or not applicant.email:
        return None
    if not preference_enabled(
        _preference_for(session, member.user_id), "application_updates"
    ):
        logger.debug(f"User {member.user_id} opted out of application updates")
        return None

    label = "Approved" if member.status == MemberStatus.approved else "Rejected"
    email = QueuedEmail(
        to_email=applicant.email,
        subject=f"Application {label}",
        body=f"Your application status has been updated to {member.status.value}.",
        template_type=TemplateType.application_status,
        payload={
            "status": member.status.value,
            "interview_notes": member.interview_notes,
            "project_id": member.project_id,
            "to_email": applicant.email,
        },
    )
    session.add(email)
    session.commit()
    logger.info(
        f"Queued application {member.status.value} email for user {member.user_id}"
    )
    return email
