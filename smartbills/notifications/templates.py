from datetime import datetime
from html import escape
from typing import Any, Optional, Tuple

from smartbills.utils.timezone import to_utc_aware


def format_amount(amount: Any) -> str:
    return f"৳{float(amount or 0):.2f}"


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return "N/A"
    return to_utc_aware(value).strftime("%Y-%m-%d")


def render_reminder(
    title: Optional[str],
    provider_name: Optional[str] = None,
    amount: Any = None,
    due_date: Optional[datetime] = None,
    message: Optional[str] = None,
) -> Tuple[str, str]:
    """Build the (subject, html) pair for a bill reminder email."""
    subject = f"Reminder: {title}" if title else "SmartBills Reminder"

    summary = {
        "Bill": title or "N/A",
        "Provider": provider_name or "N/A",
        "Amount": format_amount(amount) if amount is not None else "N/A",
        "Due Date": format_date(due_date),
    }
    rows = "".join(
        f'<tr><td style="padding:6px 12px;border:1px solid #e5e7eb;background:#f9fafb;font-weight:600;">{escape(label)}</td>'
        f'<td style="padding:6px 12px;border:1px solid #e5e7eb;">{escape(str(value))}</td></tr>'
        for label, value in summary.items()
    )
    note = f"<p>{escape(message)}</p>" if message else ""

    html = f"""
      <div style="font-family:Arial,Helvetica,sans-serif;max-width:540px;margin:auto;color:#111827;">
        <h2 style="color:#059669;">SmartBills Reminder</h2>
        <p>This is a reminder about an upcoming bill:</p>
        <table style="border-collapse:collapse;width:100%;margin:16px 0;font-size:14px;">{rows}</table>
        {note}
        <p style="margin-top:24px;">— SmartBills Team</p>
      </div>
    """
    return subject, html


def render_notification(notification) -> Tuple[str, str]:
    return render_reminder(
        title=notification.title,
        provider_name=notification.provider_name,
        amount=notification.amount,
        due_date=notification.due_date,
        message=notification.message,
    )
