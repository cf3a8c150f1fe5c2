"""Email templates keyed by ``TemplateType``.

Queue metadata is validated into one payload model per template type, then
rendered by a pure function. Nothing here touches the database or network.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from fpcp.models.email_queue import QueuedEmail, TemplateType

COLOR_PRIMARY = "#2563eb"  # blue
COLOR_APPROVED = "#10b981"  # green
COLOR_REJECTED = "#ef4444"  # red
COLOR_REMINDER = "#f59e0b"  # amber


class NewProjectPayload(BaseModel):
    template_type: Literal["new_project"] = "new_project"
    to_email: str
    project_title: str
    project_description: str
    required_skills: Optional[List[str]] = None
    project_id: Optional[int] = None


class ApplicationStatusPayload(BaseModel):
    template_type: Literal["application_status"] = "application_status"
    to_email: str
    status: str
    project_id: int
    interview_notes: Optional[str] = None

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"


class DeadlineReminderPayload(BaseModel):
    template_type: Literal["deadline_reminder"] = "deadline_reminder"
    to_email: str
    project_id: int
    project_title: str
    deadline: datetime
    days_remaining: int


class OtherPayload(BaseModel):
    template_type: Literal["other"] = "other"
    to_email: str
    body: Optional[str] = None


EmailPayload = Annotated[
    Union[NewProjectPayload, ApplicationStatusPayload, DeadlineReminderPayload, OtherPayload],
    Field(discriminator="template_type"),
]

_payload_adapter: TypeAdapter = TypeAdapter(EmailPayload)


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    subject: str
    html: str


def parse_payload(
    template_type: TemplateType, metadata: Optional[Dict[str, Any]], to_email: str
) -> EmailPayload:
    """Validate queue metadata for ``template_type``.

    The queue row's own address always wins over ``metadata["to_email"]``.

    Raises:
        pydantic.ValidationError: a required field is missing or malformed.
    """
    data = {**(metadata or {}), "to_email": to_email, "template_type": template_type.value}
    return _payload_adapter.validate_python(data)


def _button(href: str) -> str:
    return (
        f'<a href="{escape(href)}" style="display: inline-block; padding: 10px 20px; '
        f"background-color: {COLOR_PRIMARY}; color: white; text-decoration: none; "
        f'border-radius: 5px; margin-top: 20px;">View Project</a>'
    )


def _wrap(inner: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{inner}</div>"
    )


def _project_url(base_url: str, project_id: Optional[int]) -> str:
    base = base_url.rstrip("/")
    if project_id is None:
        return base
    return f"{base}/project/{project_id}"


def format_days_remaining(days: int) -> str:
    if days == 0:
        return "Due today"
    if days < 0:
        return f"Overdue by {-days} day(s)"
    return f"Days remaining: {days}"


def format_deadline(deadline: datetime) -> str:
    return f"{deadline:%B} {deadline.day}, {deadline.year}"


def render_new_project(payload: NewProjectPayload, base_url: str) -> RenderedEmail:
    parts = [
        f'<h2 style="color: {COLOR_PRIMARY};">New Project Available!</h2>',
        f"<h3>{escape(payload.project_title)}</h3>",
        f"<p>{escape(payload.project_description)}</p>",
    ]
    if payload.required_skills:
        skills = ", ".join(escape(skill) for skill in payload.required_skills)
        parts.append(f"<p><strong>Required Skills:</strong> {skills}</p>")
    parts.append(_button(_project_url(base_url, payload.project_id)))

    return RenderedEmail(
        to=payload.to_email,
        subject=f"New Project: {payload.project_title}",
        html=_wrap("".join(parts)),
    )


def render_application_status(
    payload: ApplicationStatusPayload, base_url: str
) -> RenderedEmail:
    label = "Approved" if payload.is_approved else "Rejected"
    color = COLOR_APPROVED if payload.is_approved else COLOR_REJECTED
    parts = [
        f'<h2 style="color: {color};">Application {label}</h2>',
        "<p>Your application status has been updated.</p>",
    ]
    if payload.interview_notes:
        parts.append(f"<p><strong>Notes:</strong> {escape(payload.interview_notes)}</p>")
    parts.append(_button(_project_url(base_url, payload.project_id)))

    return RenderedEmail(
        to=payload.to_email,
        subject=f"Application {label}",
        html=_wrap("".join(parts)),
    )


def render_deadline_reminder(
    payload: DeadlineReminderPayload, base_url: str
) -> RenderedEmail:
    parts = [
        f'<h2 style="color: {COLOR_REMINDER};">Deadline Reminder</h2>',
        f"<h3>{escape(payload.project_title)}</h3>",
        f"<p>This project is due on {format_deadline(payload.deadline)}</p>",
        f"<p>{format_days_remaining(payload.days_remaining)}</p>",
        _button(_project_url(base_url, payload.project_id)),
    ]
    return RenderedEmail(
        to=payload.to_email,
        subject=f"Deadline Reminder: {payload.project_title}",
        html=_wrap("".join(parts)),
    )


def render_other(payload: OtherPayload, base_url: str) -> RenderedEmail:
    body = escape(payload.body) if payload.body else "You have a new notification"
    return RenderedEmail(to=payload.to_email, subject="Notification", html=f"<p>{body}</p>")


def render_email(payload: EmailPayload, base_url: str) -> RenderedEmail:
    if isinstance(payload, NewProjectPayload):
        return render_new_project(payload, base_url)
    if isinstance(payload, ApplicationStatusPayload):
        return render_application_status(payload, base_url)
    if isinstance(payload, DeadlineReminderPayload):
        return render_deadline_reminder(payload, base_url)
    if isinstance(payload, OtherPayload):
        return render_other(payload, base_url)
    raise TypeError(f"No template for payload {type(payload).__name__}")


def render_queued_email(email: QueuedEmail, base_url: str) -> RenderedEmail:
    """Render a queue row, falling back to its stored body for ``other`` emails."""
    metadata = dict(email.payload or {})
    if email.template_type == TemplateType.other and not metadata.get("body"):
        metadata["body"] = email.body or None
    payload = parse_payload(email.template_type, metadata, email.to_email)
    return render_email(payload, base_url)
