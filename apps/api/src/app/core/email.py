"""
Email Service using Resend

Transactional email for admin accounts (password reset).
"""

import asyncio
import logging
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key


def mask_email(email: str) -> str:
    """Mask an address for logs: ``jo***@example.com``."""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:2]}***@{domain}"


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Without RESEND_API_KEY the email is logged instead of sent.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent (or logged) successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {mask_email(to_email)} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent to {mask_email(to_email)}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {mask_email(to_email)}: {e}")
        return False


async def send_password_reset(
    to_email: str,
    admin_name: str,
    token: str,
    expires_minutes: int,
) -> bool:
    """Send the password reset link to an admin."""
    safe_name = escape(admin_name)
    reset_url = f"{settings.frontend_url}/admin/reset-password?token={token}"

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .button {{ display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1>Reset Your Password</h1>

            <p>Hello {safe_name},</p>

            <p>We received a request to reset the password for your admin account.</p>

            <a href="{reset_url}" class="button">Reset Password</a>

            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #3b82f6;">{reset_url}</p>

            <p><strong>This link expires in {expires_minutes} minutes and can be used once.</strong></p>

            <div class="footer">
                <p>If you didn't request a password reset, you can safely ignore this email.</p>
            </div>
        </div>
    </body>
    </html>
    """
    return await send_email(
        to_email=to_email,
        subject="Reset your admin password",
        html_content=html_content,
    )
