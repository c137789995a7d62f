# quickdesk/services/email_service.py
"""Transactional email over SMTP: welcome, ticket lifecycle and password reset"""
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import List, Optional

from quickdesk.core.config import Settings
from quickdesk.core.logger import get_logger
from quickdesk.models import Ticket, User
from quickdesk.utils.exceptions import QuickDeskException

logger = get_logger(__name__)

TICKET_EMAIL_TYPES = ("created", "updated", "resolved")


class EmailDeliveryError(QuickDeskException):
    """SMTP transport rejected or failed to deliver a message"""
    def __init__(self, message: str = "Email could not be sent"):
        super().__init__(message, "EMAIL_DELIVERY_FAILED", 500)


class EmailService:
    """SMTP mailer. When no SMTP host is configured, messages are logged and skipped."""

    def __init__(self, settings: Settings):
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.from_name = settings.email_from_name
        self.frontend_url = settings.frontend_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def send_email(self, to_email: str, subject: str, html_content: str) -> bool:
        """
        Send a single HTML email.

        Args:
            to_email: Recipient address
            subject: Subject line
            html_content: HTML body

        Returns:
            True if handed to the SMTP server, False if SMTP is not configured

        Raises:
            EmailDeliveryError: If the SMTP conversation fails
        """
        if not self.is_configured:
            logger.info(f"SMTP not configured, skipping email to {to_email}: {subject}")
            return False

        from_address = self.smtp_user or f"noreply@{self.smtp_host}"
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{from_address}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        try:
            if self.smtp_port == 465:
                server = smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, timeout=30)
            else:
                server = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30)
            with server:
                if self.smtp_port != 465:
                    server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(from_address, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"✗ Email failed to {to_email}: {e}")
            raise EmailDeliveryError()

        logger.info(f"✓ Email sent to {to_email}: {subject}")
        return True

    def send_welcome_email(self, user: User) -> bool:
        role = user.role.value if hasattr(user.role, "value") else user.role
        content = f"""
      <h2 style="color: #3B82F6;">Welcome to QuickDesk!</h2>
      <p>Hello {escape(user.name)},</p>
      <p>Welcome to QuickDesk - your one-stop solution for managing support tickets.</p>
      <p>Your account has been successfully created with the following details:</p>
      <ul>
        <li><strong>Name:</strong> {escape(user.name)}</li>
        <li><strong>Email:</strong> {escape(user.email)}</li>
        <li><strong>Role:</strong> {role}</li>
      </ul>
      <p>You can now log in to your account and start creating tickets or managing support requests.</p>"""
        return self.send_email(user.email, "Welcome to QuickDesk!", self._wrap(content))

    def send_ticket_notification(self, ticket: Ticket, event: str = "created") -> int:
        """
        Email the ticket creator and, if different, the assignee.

        Args:
            ticket: Ticket with created_by / assigned_to loaded
            event: One of created, updated, resolved

        Returns:
            Number of messages handed to SMTP
        """
        if event not in TICKET_EMAIL_TYPES:
            return 0

        subject, html = self._ticket_template(ticket, event)
        sent = 0
        for recipient in self._ticket_recipients(ticket):
            if self.send_email(recipient, subject, html):
                sent += 1
        return sent

    def send_password_reset_email(self, user: User, reset_token: str) -> bool:
        reset_url = f"{self.frontend_url}/reset-password/{reset_token}"
        content = f"""
      <h2 style="color: #3B82F6;">Password Reset Request</h2>
      <p>Hello {escape(user.name)},</p>
      <p>You have requested to reset your password for your QuickDesk account.</p>
      <p>Please click the button below to reset your password:</p>
      <div style="text-align: center; margin: 30px 0;">
        <a href="{reset_url}" style="background: #3B82F6; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px; display: inline-block;">Reset Password</a>
      </div>
      <p>If the button doesn't work, you can copy and paste this link into your browser:</p>
      <p style="word-break: break-all; color: #6B7280;">{reset_url}</p>
      <p><strong>Note:</strong> This link will expire in 1 hour for security reasons.</p>
      <p>If you didn't request this password reset, please ignore this email.</p>"""
        return self.send_email(user.email, "Password Reset Request", self._wrap(content))

    @staticmethod
    def _ticket_recipients(ticket: Ticket) -> List[str]:
        recipients = []
        if ticket.created_by is not None and ticket.created_by.email:
            recipients.append(ticket.created_by.email)
        assignee = ticket.assigned_to
        if (
            assignee is not None
            and assignee.email
            and (ticket.created_by is None or assignee.id != ticket.created_by.id)
        ):
            recipients.append(assignee.email)
        return recipients

    def _ticket_template(self, ticket: Ticket, event: str):
        status = ticket.status.value if hasattr(ticket.status, "value") else ticket.status
        priority = ticket.priority.value if hasattr(ticket.priority, "value") else ticket.priority
        title = escape(ticket.title)

        if event == "created":
            subject = f"New Ticket Created - {ticket.ticket_id}"
            content = f"""
      <h2 style="color: #3B82F6;">New Ticket Created</h2>
      <p><strong>Ticket ID:</strong> {ticket.ticket_id}</p>
      <p><strong>Title:</strong> {title}</p>
      <p><strong>Priority:</strong> {priority.upper()}</p>
      <p><strong>Status:</strong> {status}</p>
      <p><strong>Description:</strong></p>
      <p style="background: #f8f9fa; padding: 15px; border-radius: 5px;">{escape(ticket.description)}</p>
      <p>You can view and manage this ticket in your QuickDesk dashboard.</p>"""
        elif event == "updated":
            subject = f"Ticket Updated - {ticket.ticket_id}"
            content = f"""
      <h2 style="color: #10B981;">Ticket Updated</h2>
      <p><strong>Ticket ID:</strong> {ticket.ticket_id}</p>
      <p><strong>Title:</strong> {title}</p>
      <p><strong>Status:</strong> {status}</p>
      <p>Your ticket has been updated. Please check your dashboard for the latest information.</p>"""
        else:
            subject = f"Ticket Resolved - {ticket.ticket_id}"
            resolution = ""
            if ticket.resolution:
                resolution = (
                    "<p><strong>Resolution:</strong></p>"
                    f'<p style="background: #f0f9ff; padding: 15px; border-radius: 5px;">{escape(ticket.resolution)}</p>'
                )
            content = f"""
      <h2 style="color: #10B981;">Ticket Resolved</h2>
      <p><strong>Ticket ID:</strong> {ticket.ticket_id}</p>
      <p><strong>Title:</strong> {title}</p>
      <p>Great news! Your ticket has been resolved.</p>
      {resolution}
      <p>If you're satisfied with the resolution, please consider rating your experience.</p>"""

        return subject, self._wrap(content)

    def _wrap(self, content: str, footer: Optional[str] = None) -> str:
        footer = footer or f"<p>Best regards,<br>The {self.from_name} Team</p>"
        return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      {content}
      <br>
      {footer}
    </div>
"""
