from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fpcp.config import Settings, get_settings
from fpcp.models import (
    EmailPreference,
    MemberStatus,
    Profile,
    Project,
    ProjectMember,
    ProjectStatus,
    QueuedEmail,
    TemplateType,
    preference_enabled,
)
from fpcp.models.base import to_naive_utc
from fpcp.notifications.errors import JobError

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class Recipient:
    user_id: int
    email: str


@dataclass
class ScanResult:
    projects_processed: int = 0
    emails_queued: int = 0
    projects_failed: int = 0


def days_remaining(deadline: datetime, now: datetime) -> int:
    """Whole days until ``deadline``, rounded up. Negative once overdue."""
    return math.ceil((deadline - now).total_seconds() / SECONDS_PER_DAY)


class ReminderScanner:
    """Queues deadline reminder emails for projects close to their deadline.

    A project is picked up at most once per cooldown period: its
    ``last_reminder_sent`` timestamp is the only de-duplication record, so
    overlapping scans are not mutually exclusive.
    """

    def __init__(self, session: Session, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    def find_due_projects(self, now: datetime) -> List[Project]:
        window_end = now + timedelta(days=self.settings.reminder_window_days)
        cooldown_start = now - timedelta(hours=self.settings.reminder_cooldown_hours)

        stmt = (
            select(Project)
            .where(
                Project.status != ProjectStatus.completed,
                Project.deadline.is_not(None),
                Project.deadline <= window_end,
                or_(
                    Project.last_reminder_sent.is_(None),
                    Project.last_reminder_sent < cooldown_start,
                ),
            )
            .order_by(Project.deadline, Project.id)
        )
        return list(self.session.scalars(stmt).all())

    def _recipients(self, project: Project) -> List[Recipient]:
        """Owner plus approved members, one entry per user, addressless users dropped."""
        recipients: Dict[int, Recipient] = {}

        owner = self.session.get(Profile, project.owner_id)
        if owner is not None and owner.email:
            recipients[owner.id] = Recipient(user_id=owner.id, email=owner.email)

        members = self.session.execute(
            select(Profile.id, Profile.email)
            .join(ProjectMember, ProjectMember.user_id == Profile.id)
            .where(
                ProjectMember.project_id == project.id,
                ProjectMember.status == MemberStatus.approved,
            )
            .order_by(ProjectMember.id)
        ).all()
        for user_id, email in members:
            if email and user_id not in recipients:
                recipients[user_id] = Recipient(user_id=user_id, email=email)

        return list(recipients.values())

    def _preferences(self, user_ids: List[int]) -> Dict[int, EmailPreference]:
        if not user_ids:
            return {}
        rows = self.session.scalars(
            select(EmailPreference).where(EmailPreference.user_id.in_(user_ids))
        ).all()
        return {pref.user_id: pref for pref in rows}

    def _queue_reminder(
        self, project: Project, recipient: Recipient, remaining: int
    ) -> QueuedEmail:
        email = QueuedEmail(
            to_email=recipient.email,
            subject=f"Deadline Reminder: {project.title}",
            body=f'The project "{project.title}" is due in {remaining} day(s).',
            template_type=TemplateType.deadline_reminder,
            payload={
                "project_id": project.id,
                "project_title": project.title,
                "deadline": project.deadline.isoformat(),
                "days_remaining": remaining,
                "to_email": recipient.email,
            },
        )
        self.session.add(email)
        return email

    def process_project(self, project: Project, now: datetime) -> int:
        """Queue reminders for one project and stamp it. Returns emails queued."""
        remaining = days_remaining(project.deadline, now)
        recipients = self._recipients(project)
        preferences = self._preferences([r.user_id for r in recipients])

        queued = 0
        for recipient in recipients:
            if not preference_enabled(
                preferences.get(recipient.user_id), "deadline_reminders"
            ):
                logger.debug(
                    f"Skipping reminder for user {recipient.user_id}: opted out"
                )
                continue
            self._queue_reminder(project, recipient, remaining)
            queued += 1

        # Stamped even when nobody was eligible so the project is not rescanned
        project.last_reminder_sent = now
        self.session.commit()
        return queued

    def run(self, now: datetime) -> ScanResult:
        now = to_naive_utc(now)
        logger.info(f"Starting deadline reminder scan at {now.isoformat()}")

        try:
            projects = self.find_due_projects(now)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching projects: {e}")
            self.session.rollback()
            raise JobError(f"Could not fetch projects: {e}") from e

        logger.info(f"Found {len(projects)} projects with upcoming deadlines")

        # Ids are read up front; a rollback expires every loaded project
        project_ids = [project.id for project in projects]

        result = ScanResult()
        try:
            for project_id, project in zip(project_ids, projects):
                try:
                    queued = self.process_project(project, now)
                except SQLAlchemyError as e:
                    self.session.rollback()
                    result.projects_failed += 1
                    logger.error(f"Error processing project {project_id}: {e}")
                    continue

                result.projects_processed += 1
                result.emails_queued += queued
                logger.info(f"Project {project_id}: queued {queued} reminders")
        except SQLAlchemyError as e:
            logger.error(f"Deadline reminder scan aborted: {e}")
            raise JobError(f"Deadline reminder scan aborted: {e}") from e

        logger.info(
            f"Deadline reminder scan completed: {result.projects_processed} projects, "
            f"{result.emails_queued} emails queued, {result.projects_failed} failed"
        )
        return result
