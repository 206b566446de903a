"""Email service for sending new-user credentials."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from flask_mail import Mail, Message

from expensehub import mail

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserCredentials:
    name: str
    email: str
    password: str
    company_name: str
    role: str
    project_name: Optional[str] = None


class EmailService:
    """Builds and sends transactional emails through Flask-Mail."""

    def __init__(self, mail: Optional[Mail] = None):
        self.mail = mail

    def send_user_credentials(self, credentials: UserCredentials) -> bool:
        """Send login credentials to a newly created user."""
        try:
            return self._send_email(
                to_email=credentials.email,
                subject=f"Welcome to {credentials.company_name} - Your Login Credentials",
                html_body=self._credentials_html(credentials),
                text_body=self._credentials_text(credentials),
            )
        except Exception:
            logger.exception("Failed to send credentials email to %s", credentials.email)
            return False

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        msg = Message(
            subject=subject,
            sender=current_app.config.get("MAIL_DEFAULT_SENDER"),
            recipients=[to_email],
        )
        msg.html = html_body
        msg.body = text_body

        if not current_app.config.get("EMAIL_DELIVERY_ENABLED"):
            # Delivery disabled: log the message and simulate provider latency.
            logger.info("Email delivery disabled; would send %r to %s:\n%s", subject, to_email, text_body)
            delay = float(current_app.config.get("EMAIL_STUB_DELAY_SECONDS", 0) or 0)
            if delay > 0:
                time.sleep(delay)
            return True

        if not self.mail:
            logger.error("Mail service not initialized")
            return False

        self.mail.send(msg)
        logger.info("Email sent successfully to %s", to_email)
        return True

    @staticmethod
    def _credentials_text(credentials: UserCredentials) -> str:
        lines = [
            f"Hi {credentials.name},",
            "",
            f"An account has been created for you at {credentials.company_name}.",
            "",
            f"Email: {credentials.email}",
            f"Password: {credentials.password}",
            f"Role: {credentials.role}",
        ]
        if credentials.project_name:
            lines.append(f"Project: {credentials.project_name}")
        lines += ["", "Please log in and keep these credentials safe."]
        return "\n".join(lines)

    @staticmethod
    def _credentials_html(credentials: UserCredentials) -> str:
        project_row = (
            f"<tr><td><strong>Project</strong></td><td>{credentials.project_name}</td></tr>"
            if credentials.project_name
            else ""
        )
        return f"""
        <html>
        <body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif;">
            <h2>Welcome to {credentials.company_name}</h2>
            <p>Hi {credentials.name},</p>
            <p>An account has been created for you. Use the credentials below to log in.</p>
            <table>
                <tr><td><strong>Email</strong></td><td>{credentials.email}</td></tr>
                <tr><td><strong>Password</strong></td><td><code>{credentials.password}</code></td></tr>
                <tr><td><strong>Role</strong></td><td>{credentials.role}</td></tr>
                {project_row}
            </table>
            <p>Please keep these credentials safe.</p>
        </body>
        </html>
        """


def get_email_service() -> EmailService:
    return EmailService(mail)
