"""
Email Service Module
====================

Sends compiled template HTML through Resend or SMTP.
Provider is selected via EMAIL_PROVIDER config ('resend' or 'smtp').
"""

import re
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

import resend

# Rejects consecutive dots, leading/trailing dots in local part
_VALID_EMAIL = re.compile(r'^[a-zA-Z0-9_%+-]+(\.[a-zA-Z0-9_%+-]+)*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$')

logger = logging.getLogger(__name__)


class EmailService:
    """
    Email service supporting Resend and SMTP.

    Configuration (set in Flask app.config):
        EMAIL_PROVIDER: 'resend' (default) or 'smtp'
        RESEND_API_KEY: Your Resend API key (required if provider is 'resend')
        EMAIL_HOST: SMTP server host (default: 'smtp.gmail.com')
        EMAIL_PORT: SMTP server port (default: 587)
        EMAIL_PASSWORD: SMTP password/app password (required if provider is 'smtp')
        EMAIL_ADDRESS: Sender email address (default: onboarding@resend.dev)
        EMAIL_ADMIN_EMAIL: Recipient for test sends
    """

    def __init__(self, app=None):
        self.provider = 'resend'
        self.api_key = None
        self.sender_email = None
        self.admin_email = None
        self.smtp_host = 'smtp.gmail.com'
        self.smtp_port = 587
        self.smtp_password = None

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize email service with Flask app configuration"""
        self.provider = (app.config.get('EMAIL_PROVIDER') or 'resend').lower()
        self.sender_email = app.config.get('EMAIL_ADDRESS') or 'onboarding@resend.dev'
        self.admin_email = app.config.get('EMAIL_ADMIN_EMAIL')
        logger.info(f"Email service initialised (provider: {self.provider}, sender: {self.sender_email})")

        if self.provider == 'smtp':
            self.smtp_host = app.config.get('EMAIL_HOST') or 'smtp.gmail.com'
            self.smtp_port = int(app.config.get('EMAIL_PORT') or 587)
            self.smtp_password = app.config.get('EMAIL_PASSWORD')
            if not self.smtp_password:
                logger.warning("EMAIL_PASSWORD not configured - SMTP email sending disabled")
        else:
            self.api_key = app.config.get('RESEND_API_KEY')
            if not self.api_key:
                logger.warning("RESEND_API_KEY not configured - email sending disabled")
                return
            resend.api_key = self.api_key
            logger.info("Resend API client initialized successfully")

    @property
    def configured(self):
        if self.provider == 'smtp':
            return bool(self.smtp_password)
        return bool(self.api_key)

    def send_email(self, to: List[str], subject: str, html_body: str,
                   text_body: Optional[str] = None) -> bool:
        """
        Send an email to each recipient via the configured provider.

        Returns:
            bool: True if at least one email was sent successfully
        """
        if not to:
            logger.error("No recipients provided")
            return False

        valid_recipients = []
        for addr in to:
            if _VALID_EMAIL.match(addr or ''):
                valid_recipients.append(addr)
            else:
                logger.warning(f"Skipping invalid email address: {addr}")

        if not valid_recipients:
            logger.error("No valid recipients after filtering")
            return False

        sent_count = 0
        for recipient in valid_recipients:
            try:
                if self.provider == 'smtp':
                    success = self._send_via_smtp(recipient, subject, html_body, text_body)
                else:
                    success = self._send_via_resend(recipient, subject, html_body, text_body)
                if success:
                    sent_count += 1
            except Exception as send_error:
                logger.error(f"Error sending to {recipient}: {send_error}")

        if sent_count < len(valid_recipients):
            logger.warning(f"Email send completed with errors: {sent_count}/{len(valid_recipients)} sent")
        else:
            logger.info(f"Email sent successfully to {sent_count} recipients: {subject}")

        return sent_count > 0

    def _send_via_resend(self, recipient: str, subject: str, html_body: str,
                         text_body: Optional[str] = None) -> bool:
        """Send a single email via the Resend API"""
        if not self.api_key:
            logger.error("Resend API key not configured")
            return False

        email_params = {
            "from": self.sender_email,
            "to": [recipient],
            "subject": subject,
            "html": html_body,
        }
        if text_body:
            email_params["text"] = text_body

        # Module-level key; re-set in case another app configured a different one
        resend.api_key = self.api_key
        r = resend.Emails.send(email_params)

        if r and r.get('id'):
            logger.debug(f"Email sent successfully to: {recipient}, ID: {r['id']}")
            return True
        logger.error(f"Resend error for {recipient}: {r}")
        return False

    def _send_via_smtp(self, recipient: str, subject: str, html_body: str,
                       text_body: Optional[str] = None) -> bool:
        """Send a single email via SMTP (e.g. Gmail)"""
        if not self.smtp_password:
            logger.error("SMTP password not configured")
            return False

        msg = MIMEMultipart('alternative')
        msg['From'] = self.sender_email
        msg['To'] = recipient
        msg['Subject'] = subject

        if text_body:
            msg.attach(MIMEText(text_body, 'plain', 'utf-8'))
        msg.attach(MIMEText(html_body, 'html', 'utf-8'))

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.sender_email, self.smtp_password)
            server.send_message(msg)

        logger.info(f"SMTP email sent to {recipient}")
        return True
