"""Email service using SendGrid."""

import logging
from dataclasses import dataclass
from html import escape

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from certauth.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    error: str | None = None


class EmailService:
    """Service for sending transactional emails via SendGrid.

    Every method returns a NotificationResult and never raises, so a mail
    outage cannot abort an authentication flow.
    """

    @staticmethod
    def _send_email(to_email: str, subject: str, html_content: str) -> NotificationResult:
        """Send email via SendGrid."""
        if not settings.sendgrid_api_key:
            logger.warning("SendGrid API key not configured, skipping email send")
            return NotificationResult(success=False, error="not configured")

        message = Mail(
            from_email=(settings.email_from_address, settings.email_from_name),
            to_emails=to_email,
            subject=subject,
            html_content=html_content,
        )

        try:
            sg = SendGridAPIClient(settings.sendgrid_api_key)
            response = sg.send(message)
            logger.info(f"Email sent to {to_email}, status: {response.status_code}")
        except Exception as e:
            # python-http-client raises HTTPError subclasses, transport errors vary
            logger.exception(f"Failed to send email to {to_email}")
            return NotificationResult(success=False, error=str(e) or type(e).__name__)

        if response.status_code in (200, 201, 202):
            return NotificationResult(success=True)
        return NotificationResult(success=False, error=f"status {response.status_code}")

    @staticmethod
    def _greeting(full_name: str | None) -> str:
        return f"<p>Hello {escape(full_name)},</p>" if full_name else "<p>Hello,</p>"

    @classmethod
    def send_verification_email(
        cls, email: str, token: str, full_name: str | None = None
    ) -> NotificationResult:
        """Send email verification link."""
        verify_url = f"{settings.frontend_url}/verify-email?token={token}"
        html = f"""
        <h2>Verify Your Email</h2>
        {cls._greeting(full_name)}
        <p>Click the link below to verify your email address:</p>
        <p><a href="{verify_url}">{verify_url}</a></p>
        <p>This link expires in {settings.email_verification_expire_hours} hours.</p>
        <p>After verification an administrator will review your registration.</p>
        """
        return cls._send_email(email, f"Verify Your Email - {settings.email_from_name}", html)

    @classmethod
    def send_password_reset_email(
        cls, email: str, reset_url: str, full_name: str | None = None
    ) -> NotificationResult:
        """Send password reset link."""
        html = f"""
        <h2>Reset Your Password</h2>
        {cls._greeting(full_name)}
        <p>Click the link below to reset your password:</p>
        <p><a href="{reset_url}">{reset_url}</a></p>
        <p>This link expires in {settings.reset_token_expire_minutes} minutes.</p>
        <p>If you didn't request this, you can ignore this email.</p>
        """
        return cls._send_email(email, f"Reset Your Password - {settings.email_from_name}", html)

    @classmethod
    def send_security_alert(
        cls, email: str, event: str, full_name: str | None = None
    ) -> NotificationResult:
        """Notify the account owner of a security-relevant change."""
        html = f"""
        <h2>Security Alert</h2>
        {cls._greeting(full_name)}
        <p>{escape(event)}</p>
        <p>If you didn't make this change, please contact support immediately.</p>
        """
        return cls._send_email(email, f"Security Alert - {settings.email_from_name}", html)

    @classmethod
    def send_account_activated(
        cls, email: str, full_name: str | None = None
    ) -> NotificationResult:
        """Send welcome email after admin approval."""
        login_url = f"{settings.frontend_url}/login"
        html = f"""
        <h2>Your Account Is Active</h2>
        {cls._greeting(full_name)}
        <p>An administrator has approved your registration. You can now log in.</p>
        <p><a href="{login_url}">Log in</a></p>
        """
        return cls._send_email(email, f"Account Approved - {settings.email_from_name}", html)

    @classmethod
    def send_account_rejected(
        cls, email: str, reason: str | None = None, full_name: str | None = None
    ) -> NotificationResult:
        """Tell the applicant their registration was declined."""
        reason_html = f"<p>Reason: {escape(reason)}</p>" if reason else ""
        html = f"""
        <h2>Registration Not Approved</h2>
        {cls._greeting(full_name)}
        <p>Your registration was reviewed and could not be approved.</p>
        {reason_html}
        """
        return cls._send_email(email, f"Registration Update - {settings.email_from_name}", html)
