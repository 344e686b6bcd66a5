"""HTML email templates.

Every builder returns a ``(subject, html)`` pair. Interpolated values are
escaped; the surrounding markup is trusted.
"""

from __future__ import annotations

from decimal import Decimal
from html import escape

SIGNATURE = "RCR Project Management"

_BOX = "background: #f4f4f5; padding: 16px; border-radius: 8px; margin: 16px 0;"
_OK_BOX = "background: #f0fdf4; padding: 16px; border-radius: 8px; margin: 16px 0; border-left: 4px solid #22c55e;"
_KO_BOX = "background: #fef2f2; padding: 16px; border-radius: 8px; margin: 16px 0; border-left: 4px solid #ef4444;"


def _e(value: object) -> str:
    return escape("" if value is None else str(value))


def _row(label: str, value: object) -> str:
    return f'<p style="margin: 0 0 8px 0;"><strong>{_e(label)}:</strong> {_e(value)}</p>'


def _layout(title: str, color: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {color};">{_e(title)}</h2>'
        f"{body}"
        f'<p style="color: #71717a; font-size: 12px; margin-top: 32px;">{_e(SIGNATURE)}</p>'
        "</div>"
    )


def _link(url: str | None, label: str) -> str:
    if not url:
        return ""
    return f'<p><a href="{_e(url)}">{_e(label)}</a></p>'


def format_amount(amount: Decimal | float | int | str) -> str:
    """Format an Ariary amount the way the party statements print it: ``1 500 000 Ar``."""

    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    whole, _, cents = f"{value:,.2f}".partition(".")
    whole = whole.replace(",", " ")
    return f"{whole} Ar" if cents == "00" else f"{whole},{cents} Ar"


# ---------- Tasks ----------
def task_assigned(
    *,
    assignee_name: str,
    task_title: str,
    project_name: str,
    due_date: str | None,
    link: str | None,
) -> tuple[str, str]:
    subject = f"[{project_name}] Asa vaovao: {task_title}"
    body = (
        f"<p>Miarahaba {_e(assignee_name)},</p>"
        f"<p>Nomena anao ny asa <strong>{_e(task_title)}</strong> ao amin'ny tetikasa "
        f"<strong>{_e(project_name)}</strong>.</p>"
        f'<div style="{_BOX}">{_row("Asa", task_title)}{_row("Daty farany", due_date or "-")}</div>'
        f"{_link(link, 'Jereo ny asa')}"
    )
    return subject, _layout("Asa vaovao", "#3b82f6", body)


# ---------- Material contributions ----------
def material_pending(
    *,
    contributor_name: str,
    project_name: str,
    resource_name: str,
    quantity: int,
    message: str | None,
    link: str | None,
) -> tuple[str, str]:
    subject = f"[{project_name}] Fanolorana materialy miandry"
    details = _row("Ressource", resource_name) + _row("Quantité proposée", quantity)
    if message:
        details += _row("Message", message)
    body = (
        "<p>Miarahaba,</p>"
        f"<p>Ny Kamarady <strong>{_e(contributor_name)}</strong> dia mikasa hanome fanampiana ao amin'ilay "
        f"tetikasa <strong>{_e(project_name)}</strong>.</p>"
        f'<div style="{_BOX}">{details}</div>'
        "<p>Jereo mivantana ao amin'ny Ivo-toerana raha ekenao na tsia izany fanampiana izany.</p>"
        f"{_link(link, 'Hijery ny tetikasa')}"
    )
    return subject, _layout("Fanolorana materialy vaovao miandry", "#3b82f6", body)


def material_approved(
    *,
    contributor_name: str,
    project_name: str,
    resource_name: str,
    quantity: int,
) -> tuple[str, str]:
    body = (
        f"<p>Miarahaba Kamarady {_e(contributor_name)},</p>"
        f"<p>Vaoray ary nekena ny fanampianao ao amin'ny ilay tetikasa <strong>{_e(project_name)}</strong>.</p>"
        f'<div style="{_OK_BOX}">{_row("Ressource", resource_name)}{_row("Quantité", quantity)}</div>'
        "<p>Misaotra betsaka amin'ny fanampianao !</p>"
    )
    return "Nekena ilay fanampianao !", _layout("Nekena ilay fanampianao", "#22c55e", body)


def material_rejected(
    *,
    contributor_name: str,
    project_name: str,
    resource_name: str,
    quantity: int,
    reason: str | None,
) -> tuple[str, str]:
    details = _row("Ressource", resource_name) + _row("Quantité", quantity)
    if reason:
        details += _row("Raison", reason)
    body = (
        f"<p>Salama Kamarady {_e(contributor_name)},</p>"
        f"<p>Tsy voaray ny fanampiana <strong>{_e(project_name)}</strong> kasainao atolotra.</p>"
        f'<div style="{_KO_BOX}">{details}</div>'
        "<p>Misaotra betsaka ny amin'ny fandraisanao anjara. "
        "Jereo ireo tetikasa hafa izay mbola mila fanampiana.</p>"
    )
    return "Contribution non retenue", _layout("Contribution non retenue", "#ef4444", body)


# ---------- Financial contributions ----------
def financial_pending(
    *,
    contributor_name: str,
    project_name: str,
    amount: Decimal,
    reference: str,
    link: str | None,
) -> tuple[str, str]:
    subject = f"[{project_name}] Fanohanana ara-bola miandry"
    body = (
        "<p>Miarahaba,</p>"
        f"<p>Ny Kamarady <strong>{_e(contributor_name)}</strong> dia nandefa fanohanana ara-bola ho an'ny "
        f"tetikasa <strong>{_e(project_name)}</strong>.</p>"
        f'<div style="{_BOX}">{_row("Vola", format_amount(amount))}{_row("Reference", reference)}</div>'
        "<p>Azafady hamarino ao amin'ny Ivo-toerana raha voaray.</p>"
        f"{_link(link, 'Hijery ny tetikasa')}"
    )
    return subject, _layout("Fanohanana ara-bola miandry", "#10b981", body)


def financial_approved(
    *,
    contributor_name: str,
    project_name: str,
    amount: Decimal,
    reference: str | None,
    approved_on: str,
) -> tuple[str, str]:
    details = _row("Vola", format_amount(amount)) + _row("Reference", reference or "N/A") + _row("Daty", approved_on)
    body = (
        f"<p>Miarahaba Kamarady {_e(contributor_name)},</p>"
        f"<p>Voaray ary nekena ny fanampianao ara-bola ho an'ny tetikasa <strong>{_e(project_name)}</strong>.</p>"
        f'<div style="{_OK_BOX}">{details}</div>'
        "<p>Misaotra betsaka amin'ny fanohanana !</p>"
    )
    return "Voaray ny fanampianao ara-bola", _layout("Voaray ny fanampianao", "#22c55e", body)


def financial_rejected(
    *,
    contributor_name: str,
    project_name: str,
    amount: Decimal,
    reference: str | None,
    reason: str | None,
) -> tuple[str, str]:
    details = _row("Vola", format_amount(amount)) + _row("Reference", reference or "N/A")
    if reason:
        details += _row("Raison", reason)
    body = (
        f"<p>Salama Kamarady {_e(contributor_name)},</p>"
        f"<p>Tsy voamarina ny fanohanana ara-bola nalefanao ho an'ny tetikasa <strong>{_e(project_name)}</strong>.</p>"
        f'<div style="{_KO_BOX}">{details}</div>'
    )
    return "Fanohanana ara-bola tsy voaray", _layout("Fanohanana ara-bola tsy voaray", "#ef4444", body)


# ---------- Human participation ----------
def human_confirmed(*, participant_name: str, project_name: str, resource_name: str) -> tuple[str, str]:
    body = (
        f"<p>Miarahaba {_e(participant_name)},</p>"
        f"<p>Voaray soa aman-tsara ny firotsahanao ho <strong>{_e(resource_name)}</strong> ao amin'ny tetikasa "
        f"<strong>{_e(project_name)}</strong>.</p>"
        f'<div style="{_OK_BOX}">{_row("Andraikitra", resource_name)}{_row("Tetikasa", project_name)}</div>'
        "<p>Misaotra anao noho ny fandraisanao anjara!</p>"
    )
    return f"[{project_name}] Voamarina ny firotsahanao", _layout("Voamarina ny firotsahanao", "#22c55e", body)


def human_notify_lead(
    *,
    lead_name: str,
    participant_name: str,
    participant_email: str,
    project_name: str,
    resource_name: str,
    message: str | None,
) -> tuple[str, str]:
    details = _row("Andraikitra", resource_name) + _row("Anarana", participant_name) + _row("Email", participant_email)
    if message:
        details += _row("Hafatra", message)
    body = (
        f"<p>Miarahaba {_e(lead_name)},</p>"
        f"<p><strong>{_e(participant_name)}</strong> dia nirotsaka ho <strong>{_e(resource_name)}</strong> "
        f"ao amin'ny tetikasanao <strong>{_e(project_name)}</strong>.</p>"
        f'<div style="{_BOX}">{details}</div>'
    )
    return f"[{project_name}] Mpikambana vaovao", _layout("Mpikambana vaovao", "#3b82f6", body)


# ---------- Workspaces ----------
def workspace_invitation(
    *,
    workspace_name: str,
    inviter_name: str,
    role: str,
    message: str | None,
    link: str | None,
) -> tuple[str, str]:
    details = _row("Espace", workspace_name) + _row("Rôle", role)
    if message:
        details += _row("Message", message)
    body = (
        "<p>Miarahaba,</p>"
        f"<p><strong>{_e(inviter_name)}</strong> dia manasa anao hiditra ao amin'ny "
        f"<strong>{_e(workspace_name)}</strong>.</p>"
        f'<div style="{_BOX}">{details}</div>'
        f"{_link(link, 'Hiditra')}"
    )
    return f"Fanasana hiditra ao amin'ny {workspace_name}", _layout("Fanasana", "#3b82f6", body)


# ---------- Contact ----------
def guest_contact_form(
    *,
    full_name: str,
    region: str,
    district: str,
    whatsapp: str,
    reason: str,
    is_member: str,
    received_at: str,
) -> tuple[str, str]:
    details = (
        _row("Anarana", full_name)
        + _row("Faritra", region)
        + _row("Distrika", district)
        + _row("WhatsApp", whatsapp)
        + _row("Antony", reason)
        + _row("Efa mpikambana RCR", is_member)
        + _row("Daty", received_at)
    )
    body = f"<p>Fangatahana vaovao avy amin'ny pejy fidirana.</p><div style=\"{_BOX}\">{details}</div>"
    return f"Fangatahana vaovao: {full_name}", _layout("Fangatahana vaovao", "#3b82f6", body)
