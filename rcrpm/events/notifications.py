"""Email handlers for application events (``app/*``)."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from rcrpm.events.bus import Event, HandlerContext, event_bus
from rcrpm.notifications import templates

logger = logging.getLogger(__name__)

TASK_ASSIGNED = "app/task.assigned"
MATERIAL_PENDING = "app/contribution.material.pending"
MATERIAL_APPROVED = "app/contribution.material.approved"
MATERIAL_REJECTED = "app/contribution.material.rejected"
FINANCIAL_PENDING = "app/contribution.financial.pending"
FINANCIAL_APPROVED = "app/contribution.financial.approved"
FINANCIAL_REJECTED = "app/contribution.financial.rejected"
HUMAN_CONFIRMED = "app/contribution.human.confirmed"
HUMAN_NOTIFY_LEAD = "app/contribution.human.notify-lead"
WORKSPACE_INVITATION = "app/workspace.invitation"
CONTACT_GUEST_FORM = "app/contact.guest-form"


def _deliver(context: HandlerContext, recipients: Iterable[str], message: tuple[str, str]) -> None:
    subject, html = message
    if context.mailer is None:
        logger.warning("No mailer bound; dropping %r", subject)
        return
    for recipient in recipients:
        if not recipient or (recipient, subject) in context.delivered:
            continue
        context.mailer.send(to=recipient, subject=subject, html=html)
        context.delivered.add((recipient, subject))


@event_bus.on(TASK_ASSIGNED)
def notify_task_assigned(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.task_assigned(
            assignee_name=data["assignee_name"],
            task_title=data["task_title"],
            project_name=data["project_name"],
            due_date=data.get("due_date"),
            link=data.get("link"),
        ),
    )


@event_bus.on(MATERIAL_PENDING)
def notify_material_pending(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        data["recipients"],
        templates.material_pending(
            contributor_name=data["contributor_name"],
            project_name=data["project_name"],
            resource_name=data["resource_name"],
            quantity=data["quantity"],
            message=data.get("message"),
            link=data.get("link"),
        ),
    )


@event_bus.on(MATERIAL_APPROVED)
def notify_material_approved(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.material_approved(
            contributor_name=data["contributor_name"],
            project_name=data["project_name"],
            resource_name=data["resource_name"],
            quantity=data["quantity"],
        ),
    )


@event_bus.on(MATERIAL_REJECTED)
def notify_material_rejected(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.material_rejected(
            contributor_name=data["contributor_name"],
            project_name=data["project_name"],
            resource_name=data["resource_name"],
            quantity=data["quantity"],
            reason=data.get("reason"),
        ),
    )


@event_bus.on(FINANCIAL_PENDING)
def notify_financial_pending(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        data["recipients"],
        templates.financial_pending(
            contributor_name=data["contributor_name"],
            project_name=data["project_name"],
            amount=Decimal(data["amount"]),
            reference=data["reference"],
            link=data.get("link"),
        ),
    )


@event_bus.on(FINANCIAL_APPROVED)
def notify_financial_approved(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.financial_approved(
            contributor_name=data["contributor_name"],
            project_name=data["project_name"],
            amount=Decimal(data["amount"]),
            reference=data.get("reference"),
            approved_on=data["approved_on"],
        ),
    )


@event_bus.on(FINANCIAL_REJECTED)
def notify_financial_rejected(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.financial_rejected(
            contributor_name=data["contributor_name"],
            project_name=data["project_name"],
            amount=Decimal(data["amount"]),
            reference=data.get("reference"),
            reason=data.get("reason"),
        ),
    )


@event_bus.on(HUMAN_CONFIRMED)
def notify_human_confirmed(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.human_confirmed(
            participant_name=data["participant_name"],
            project_name=data["project_name"],
            resource_name=data["resource_name"],
        ),
    )


@event_bus.on(HUMAN_NOTIFY_LEAD)
def notify_lead_of_participation(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.human_notify_lead(
            lead_name=data["lead_name"],
            participant_name=data["participant_name"],
            participant_email=data["participant_email"],
            project_name=data["project_name"],
            resource_name=data["resource_name"],
            message=data.get("message"),
        ),
    )


@event_bus.on(WORKSPACE_INVITATION)
def notify_workspace_invitation(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.workspace_invitation(
            workspace_name=data["workspace_name"],
            inviter_name=data["inviter_name"],
            role=data["role"],
            message=data.get("message"),
            link=data.get("link"),
        ),
    )


@event_bus.on(CONTACT_GUEST_FORM)
def forward_guest_form(event: Event, context: HandlerContext) -> None:
    data = event.data
    _deliver(
        context,
        [data["to"]],
        templates.guest_contact_form(
            full_name=data["full_name"],
            region=data["region"],
            district=data["district"],
            whatsapp=data["whatsapp"],
            reason=data["reason"],
            is_member=data["is_member"],
            received_at=data["received_at"],
        ),
    )
