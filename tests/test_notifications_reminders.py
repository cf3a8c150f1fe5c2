from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from fpcp.config import Settings
from fpcp.db.database import Base
from fpcp.models import (
    EmailPreference,
    MemberStatus,
    Profile,
    Project,
    ProjectMember,
    ProjectStatus,
    QueuedEmail,
    TemplateType,
    UserRole,
)
from fpcp.notifications.errors import JobError
from fpcp.notifications.reminders import ReminderScanner, days_remaining

NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture
def db_session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    Base.metadata.drop_all(engine)


@pytest.fixture
def settings():
    return Settings(_env_file=None, reminder_window_days=3, reminder_cooldown_hours=24)


def _profile(session, email, role=UserRole.freelancer, name="User"):
    profile = Profile(email=email, full_name=name, role=role)
    session.add(profile)
    session.commit()
    return profile


def _project(session, owner, deadline, **kwargs):
    project = Project(
        title=kwargs.pop("title", "Landing Page"),
        description="Build it",
        owner_id=owner.id,
        deadline=deadline,
        **kwargs,
    )
    session.add(project)
    session.commit()
    return project


def _member(session, project, user, status=MemberStatus.approved):
    member = ProjectMember(project_id=project.id, user_id=user.id, status=status)
    session.add(member)
    session.commit()
    return member


def _queued(session):
    return session.query(QueuedEmail).order_by(QueuedEmail.id).all()


class TestDaysRemaining:
    def test_due_now_is_zero(self):
        assert days_remaining(NOW, NOW) == 0

    def test_two_days_overdue_is_negative(self):
        assert days_remaining(NOW - timedelta(days=2), NOW) == -2

    def test_partial_days_round_up(self):
        assert days_remaining(NOW + timedelta(hours=1), NOW) == 1
        assert days_remaining(NOW + timedelta(days=1, hours=1), NOW) == 2

    def test_hours_overdue_is_zero(self):
        assert days_remaining(NOW - timedelta(hours=5), NOW) == 0


class TestReminderScanner:
    def test_end_to_end_owner_opted_out_member_default(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        member = _profile(db_session, "member@example.com")
        db_session.add(EmailPreference(user_id=owner.id, deadline_reminders=False))
        project = _project(db_session, owner, NOW + timedelta(days=2))
        _member(db_session, project, member)

        result = ReminderScanner(db_session, settings).run(NOW)

        assert result.projects_processed == 1
        assert result.emails_queued == 1
        emails = _queued(db_session)
        assert len(emails) == 1
        email = emails[0]
        assert email.to_email == "member@example.com"
        assert email.template_type == TemplateType.deadline_reminder
        assert email.subject == "Deadline Reminder: Landing Page"
        assert email.payload["days_remaining"] == 2
        assert email.payload["project_id"] == project.id
        assert email.payload["project_title"] == "Landing Page"
        assert email.payload["deadline"] == (NOW + timedelta(days=2)).isoformat()
        assert email.payload["to_email"] == "member@example.com"

        db_session.refresh(project)
        assert project.last_reminder_sent == NOW

    def test_one_entry_per_eligible_recipient(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        alice = _profile(db_session, "alice@example.com")
        bob = _profile(db_session, "bob@example.com")
        project = _project(db_session, owner, NOW + timedelta(days=1))
        _member(db_session, project, alice)
        _member(db_session, project, bob)

        result = ReminderScanner(db_session, settings).run(NOW)

        assert result.emails_queued == 3
        assert [e.to_email for e in _queued(db_session)] == [
            "owner@example.com",
            "alice@example.com",
            "bob@example.com",
        ]

    def test_only_approved_members_receive_reminders(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        pending = _profile(db_session, "pending@example.com")
        rejected = _profile(db_session, "rejected@example.com")
        project = _project(db_session, owner, NOW + timedelta(days=1))
        _member(db_session, project, pending, MemberStatus.pending)
        _member(db_session, project, rejected, MemberStatus.rejected)

        ReminderScanner(db_session, settings).run(NOW)

        assert [e.to_email for e in _queued(db_session)] == ["owner@example.com"]

    def test_owner_who_is_also_member_gets_one_email(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        project = _project(db_session, owner, NOW + timedelta(days=1))
        _member(db_session, project, owner)

        result = ReminderScanner(db_session, settings).run(NOW)

        assert result.emails_queued == 1

    def test_recipients_without_email_are_dropped(self, db_session, settings):
        owner = _profile(db_session, None, UserRole.project_owner)
        member = _profile(db_session, "")
        project = _project(db_session, owner, NOW + timedelta(days=1))
        _member(db_session, project, member)

        result = ReminderScanner(db_session, settings).run(NOW)

        assert result.projects_processed == 1
        assert result.emails_queued == 0
        db_session.refresh(project)
        assert project.last_reminder_sent == NOW

    def test_completed_project_is_never_scanned(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        project = _project(
            db_session, owner, NOW + timedelta(days=1), status=ProjectStatus.completed
        )

        result = ReminderScanner(db_session, settings).run(NOW)

        assert result.projects_processed == 0
        assert _queued(db_session) == []
        db_session.refresh(project)
        assert project.last_reminder_sent is None

    def test_projects_outside_window_or_without_deadline_ignored(
        self, db_session, settings
    ):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        _project(db_session, owner, NOW + timedelta(days=3, minutes=1), title="Later")
        _project(db_session, owner, None, title="Open ended")
        _project(db_session, owner, NOW + timedelta(days=3), title="Edge")

        result = ReminderScanner(db_session, settings).run(NOW)

        assert result.projects_processed == 1
        assert [e.payload["project_title"] for e in _queued(db_session)] == ["Edge"]

    def test_recently_reminded_project_is_skipped(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        _project(
            db_session,
            owner,
            NOW + timedelta(days=2),
            last_reminder_sent=NOW - timedelta(hours=12),
        )

        result = ReminderScanner(db_session, settings).run(NOW)

        assert result.projects_processed == 0
        assert _queued(db_session) == []

    def test_reminder_older_than_cooldown_is_rescanned(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        project = _project(
            db_session,
            owner,
            NOW + timedelta(days=2),
            last_reminder_sent=NOW - timedelta(hours=25),
        )

        result = ReminderScanner(db_session, settings).run(NOW)

        assert result.emails_queued == 1
        db_session.refresh(project)
        assert project.last_reminder_sent == NOW

    def test_second_scan_with_same_now_queues_nothing(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        _project(db_session, owner, NOW + timedelta(days=2))
        scanner = ReminderScanner(db_session, settings)

        first = scanner.run(NOW)
        second = scanner.run(NOW)

        assert first.emails_queued == 1
        assert second.projects_processed == 0
        assert second.emails_queued == 0
        assert len(_queued(db_session)) == 1

    def test_overdue_project_passes_negative_days(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        _project(db_session, owner, NOW - timedelta(days=2))

        ReminderScanner(db_session, settings).run(NOW)

        assert _queued(db_session)[0].payload["days_remaining"] == -2

    def test_aware_now_is_stored_as_naive_utc(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        project = _project(db_session, owner, NOW + timedelta(days=1))

        aware = datetime(2026, 3, 10, 20, 0, tzinfo=timezone(timedelta(hours=8)))
        ReminderScanner(db_session, settings).run(aware)

        db_session.refresh(project)
        assert project.last_reminder_sent == NOW

    def test_fetch_failure_raises_job_error(self, db_session, settings):
        scanner = ReminderScanner(db_session, settings)
        error = OperationalError("SELECT", {}, Exception("database is locked"))

        with patch.object(ReminderScanner, "find_due_projects", side_effect=error):
            with pytest.raises(JobError):
                scanner.run(NOW)

    def test_project_failure_does_not_abort_scan(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        broken = _project(db_session, owner, NOW + timedelta(days=1), title="Broken")
        healthy = _project(db_session, owner, NOW + timedelta(days=2), title="Healthy")

        original = ReminderScanner._recipients

        def flaky_recipients(self, project):
            if project.title == "Broken":
                raise OperationalError("SELECT", {}, Exception("connection reset"))
            return original(self, project)

        with patch.object(ReminderScanner, "_recipients", flaky_recipients):
            result = ReminderScanner(db_session, settings).run(NOW)

        assert result.projects_processed == 1
        assert result.projects_failed == 1
        assert [e.payload["project_title"] for e in _queued(db_session)] == ["Healthy"]
        db_session.refresh(broken)
        db_session.refresh(healthy)
        assert broken.last_reminder_sent is None
        assert healthy.last_reminder_sent == NOW

    def test_outage_mid_scan_counts_remaining_projects_failed(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        first = _project(db_session, owner, NOW + timedelta(days=1), title="First")
        second = _project(db_session, owner, NOW + timedelta(days=2), title="Second")
        first_id, second_id = first.id, second.id

        engine = db_session.get_bind()
        outage = {"down": False}

        def fail_when_down(conn, cursor, statement, parameters, context, executemany):
            if outage["down"]:
                raise OperationalError(statement, parameters, Exception("server closed"))

        original = ReminderScanner._recipients

        def recipients_then_outage(self, project):
            outage["down"] = True
            return original(self, project)

        event.listen(engine, "before_cursor_execute", fail_when_down)
        try:
            with patch.object(ReminderScanner, "_recipients", recipients_then_outage):
                result = ReminderScanner(db_session, settings).run(NOW)
        finally:
            outage["down"] = False
            event.remove(engine, "before_cursor_execute", fail_when_down)

        assert result.projects_processed == 0
        assert result.projects_failed == 2
        assert _queued(db_session) == []
        assert db_session.get(Project, first_id).last_reminder_sent is None
        assert db_session.get(Project, second_id).last_reminder_sent is None

    def test_unrecoverable_store_error_raises_job_error(self, db_session, settings):
        owner = _profile(db_session, "owner@example.com", UserRole.project_owner)
        _project(db_session, owner, NOW + timedelta(days=1))
        error = OperationalError("SELECT", {}, Exception("connection lost"))

        with patch.object(ReminderScanner, "_recipients", side_effect=error):
            with patch.object(db_session, "rollback", side_effect=error):
                with pytest.raises(JobError):
                    ReminderScanner(db_session, settings).run(NOW)
