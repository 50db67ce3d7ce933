"""
Email Service using Resend

Sends lifecycle notifications: application decisions, admission offers and
account approvals. Delivery is best-effort. Every function here returns a
bool and never raises into the caller's transaction.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from html import escape
from typing import Any

import resend

logger = logging.getLogger(__name__)

resend.api_key = os.getenv("RESEND_API_KEY")

EMAIL_FROM = os.getenv("EMAIL_FROM", "Career Findr <noreply@careerfindr.dev>")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

_BASE_STYLE = """
        <style>
            body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
            .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
            .header { color: #1e3a8a; margin-bottom: 24px; }
            .status { display: inline-block; padding: 4px 12px; border-radius: 9999px; background: #e0e7ff; color: #1e3a8a; font-weight: 600; }
            .note { background-color: #f9fafb; border-left: 4px solid #1e3a8a; padding: 12px 16px; margin: 16px 0; }
            .button { display: inline-block; background-color: #1e3a8a; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
            .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
        </style>
"""


def _wrap(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>{_BASE_STYLE}</head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>Career Findr - Courses, Careers and Admissions</p>
            </div>
        </div>
    </body>
    </html>
    """


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    When RESEND_API_KEY is not set the email is logged instead of sent.

    Returns:
        True if the email was sent (or logged), False on delivery failure
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_application_status(
    to_email: str,
    student_name: str,
    listing_title: str,
    listing_type: str,
    status: str,
    remarks: str | None = None,
) -> bool:
    """Tell a student their course or job application was reviewed."""
    safe_name = escape(student_name)
    safe_title = escape(listing_title)
    safe_status = escape(status.replace("_", " ").title())

    remarks_html = f'<div class="note">{escape(remarks)}</div>' if remarks else ""

    body = f"""
            <p>Hello {safe_name},</p>

            <p>Your application for the {escape(listing_type)} <strong>{safe_title}</strong> has been reviewed.</p>

            <p>New status: <span class="status">{safe_status}</span></p>

            {remarks_html}

            <a href="{FRONTEND_URL}/student/applications" class="button">View Applications</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Application update: {safe_title}",
        html_content=_wrap("Application Update", body),
    )


async def send_admission_offer(
    to_email: str,
    student_name: str,
    course_title: str,
    institution_name: str,
) -> bool:
    """Tell a student they have received an admission offer."""
    safe_name = escape(student_name)
    safe_course = escape(course_title)
    safe_institution = escape(institution_name)

    body = f"""
            <p>Hello {safe_name},</p>

            <p>Congratulations! <strong>{safe_institution}</strong> has offered you admission to
            <strong>{safe_course}</strong>.</p>

            <p>You can accept only one admission offer. Once accepted, the decision is final.</p>

            <a href="{FRONTEND_URL}/student/admissions" class="button">Respond to Offer</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Admission offer: {safe_course}",
        html_content=_wrap("Admission Offer", body),
    )


async def send_account_approval(
    to_email: str,
    account_name: str,
    role: str,
    remarks: str | None = None,
) -> bool:
    """Tell an institute or company that its account was approved."""
    safe_name = escape(account_name)
    remarks_html = f'<div class="note">{escape(remarks)}</div>' if remarks else ""

    body = f"""
            <p>Hello {safe_name},</p>

            <p>Your {escape(role)} account has been approved. You can now publish listings and
            review applications.</p>

            {remarks_html}

            <a href="{FRONTEND_URL}/login" class="button">Sign In</a>
    """
    return await send_email(
        to_email=to_email,
        subject="Your Career Findr account has been approved",
        html_content=_wrap("Account Approved", body),
    )


# ============================================
# Template Dispatch
# ============================================

_TEMPLATES: dict[str, Callable[..., Awaitable[bool]]] = {
    "application_status": send_application_status,
    "admission_offer": send_admission_offer,
    "account_approval": send_account_approval,
}


async def notify(to_email: str, template: str, data: dict[str, Any]) -> bool:
    """
    Send a templated notification.

    Never raises: unknown templates, bad template data and delivery errors
    are logged and reported as False.
    """
    sender = _TEMPLATES.get(template)
    if sender is None:
        logger.error(f"Unknown email template: {template}")
        return False

    try:
        return await sender(to_email=to_email, **data)
    except Exception as e:
        logger.error(f"Failed to render or send '{template}' email to {to_email}: {e}")
        return False
