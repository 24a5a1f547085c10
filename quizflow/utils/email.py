"""
Email Utility

Helper functions for sending emails.

Two transports are supported, picked by EMAIL_MODE: plain SMTP through
the standard library, or the Brevo transactional HTTP API.
"""

import asyncio
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging

import httpx

from quizflow.core.config import settings

logger = logging.getLogger(__name__)


# =====================================================
# Transports
# =====================================================
def _send_smtp(to_address: str, subject: str, html_body: str) -> bool:
    if not settings.SMTP_SERVER or not settings.SMTP_EMAIL:
        logger.warning("SMTP settings not configured. Email not sent.")
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_EMAIL
    msg["To"] = to_address
    msg.attach(MIMEText(html_body, "html"))

    port = int(settings.SMTP_PORT) if settings.SMTP_PORT else 587

    with smtplib.SMTP(settings.SMTP_SERVER, port) as server:
        server.starttls()
        if settings.SMTP_PASSWORD:
            server.login(settings.SMTP_EMAIL, settings.SMTP_PASSWORD)
        server.send_message(msg)
    return True


async def _send_brevo(to_address: str, subject: str, html_body: str) -> bool:
    if not settings.BREVO_API_KEY or not settings.BREVO_SENDER_EMAIL:
        logger.warning("Brevo settings not configured. Email not sent.")
        return False

    payload = {
        "sender": {
            "name": settings.BREVO_SENDER_NAME,
            "email": settings.BREVO_SENDER_EMAIL,
        },
        "to": [{"email": to_address}],
        "subject": subject,
        "htmlContent": html_body,
    }
    headers = {
        "api-key": settings.BREVO_API_KEY,
        "accept": "application/json",
        "content-type": "application/json",
    }
    async with httpx.AsyncClient(timeout=15.0) as client:
        response = await client.post(settings.BREVO_API_URL, json=payload, headers=headers)
        response.raise_for_status()
    return True


async def send_email(to_address: str, subject: str, html_body: str) -> bool:
    """
    Send an HTML email using the configured transport.

    Returns:
        True if the message was handed to the transport, False otherwise.
        Transport errors are logged, never raised.
    """
    try:
        if settings.EMAIL_MODE == "brevo":
            sent = await _send_brevo(to_address, subject, html_body)
        else:
            sent = await asyncio.to_thread(_send_smtp, to_address, subject, html_body)
    except (smtplib.SMTPException, OSError, httpx.HTTPError) as e:
        logger.error(f"Failed to send email to {to_address}: {str(e)}")
        return False

    if sent:
        logger.info(f"Email sent to {to_address}")
    return sent


# =====================================================
# Templates
# =====================================================
def _layout(heading: str, body_html: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html lang="en">
    <head><meta charset="UTF-8" /><title>{heading}</title></head>
    <body style="margin:0;padding:0;background-color:#f3f4f6;
                 font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Helvetica,Arial,sans-serif;
                 color:#111827;">
    <table width="100%" cellpadding="0" cellspacing="0" role="presentation">
        <tr><td align="center" style="padding:40px 16px;">
            <table width="100%" cellpadding="0" cellspacing="0"
                   style="max-width:600px;background-color:#ffffff;border-radius:14px;overflow:hidden;">
                <tr><td style="background:linear-gradient(135deg,#4f46e5,#7c3aed);padding:28px;text-align:center;">
                    <h1 style="margin:0;font-size:22px;color:#ffffff;">{settings.PROJECT_NAME}</h1>
                </td></tr>
                <tr><td style="padding:32px;">
                    <h2 style="margin-top:0;font-size:20px;">{heading}</h2>
                    {body_html}
                </td></tr>
                <tr><td style="padding:20px;text-align:center;background-color:#f9fafb;border-top:1px solid #e5e7eb;">
                    <p style="margin:0;font-size:12px;color:#9ca3af;">
                        © {settings.PROJECT_NAME} · Automated message · Do not reply
                    </p>
                </td></tr>
            </table>
        </td></tr>
    </table>
    </body>
    </html>
    """


def _paragraphs(text: str) -> str:
    return "".join(
        f'<p style="font-size:15px;color:#374151;line-height:1.6;">{line}</p>'
        for line in text.split("\n") if line.strip()
    )


def _link(label: str) -> str:
    if not settings.FRONTEND_URL:
        return ""
    return (
        f'<p><a href="{settings.FRONTEND_URL}" style="display:inline-block;padding:10px 20px;'
        f'background-color:#4f46e5;color:#ffffff;border-radius:8px;text-decoration:none;">{label}</a></p>'
    )


def build_assignment_email(student_name: str, quiz_title: str, description: str) -> str:
    body = (
        _paragraphs(f"Hi {student_name},")
        + _paragraphs(description)
        + _link("Open quiz")
    )
    return _layout(f"New quiz: {quiz_title}", body)


def build_submission_email(
    student_name: str,
    quiz_title: str,
    score: int,
    correct_answers: int,
    total_questions: int,
    attempt_message: str = "",
) -> str:
    body = _paragraphs(
        f"Hi {student_name},\n"
        f"Your submission for <strong>{quiz_title}</strong> has been received.\n"
        f"You scored <strong>{score}%</strong> ({correct_answers}/{total_questions} correct){attempt_message}."
    )
    return _layout("Quiz submitted", body)


def build_share_confirmation_email(teacher_name: str, quiz_title: str, description: str) -> str:
    body = _paragraphs(f"Hi {teacher_name},") + _paragraphs(description) + _link("View quiz")
    return _layout(f"Quiz shared: {quiz_title}", body)


def build_majority_completion_email(
    teacher_name: str,
    quiz_title: str,
    completed: int,
    total: int,
    percentage: int,
) -> str:
    body = _paragraphs(
        f"Hi {teacher_name},\n"
        f"{completed} out of {total} students ({percentage}%) have completed "
        f"<strong>{quiz_title}</strong>."
    ) + _link("View results")
    return _layout("Majority completion reached", body)


def build_test_email(user_name: Optional[str]) -> str:
    body = _paragraphs(
        f"Hi {user_name or 'there'},\n"
        "This is a test notification. Your email notifications are working."
    )
    return _layout("Test notification", body)
