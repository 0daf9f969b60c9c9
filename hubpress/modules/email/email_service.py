"""
Email Service Module
====================

Configurable email service supporting Resend, Amazon SES, and SMTP (e.g. Gmail).
Provider is selected via EMAIL_PROVIDER config ('resend', 'ses', or 'smtp').
"""

import logging
import re
import smtplib
import sqlite3
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

import boto3
import resend
from botocore.exceptions import BotoCoreError, ClientError
from resend.exceptions import ResendError

from ...core.database import Database

# Rejects consecutive dots, leading/trailing dots in local part
_VALID_EMAIL = re.compile(r'^[a-zA-Z0-9_%+-]+(\.[a-zA-Z0-9_%+-]+)*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$')

logger = logging.getLogger(__name__)


def is_valid_email(address):
    if not address or len(address) > 255:
        return False
    return _VALID_EMAIL.match(address.strip().lower()) is not None


class EmailService:
    """
    Configuration (set in Flask app.config):
        EMAIL_PROVIDER: 'smtp' (default), 'resend' or 'ses'
        RESEND_API_KEY: Your Resend API key (required if provider is 'resend')
        AWS_REGION: AWS region for SES
        EMAIL_HOST / EMAIL_PORT / EMAIL_PASSWORD: SMTP settings
        EMAIL_ADDRESS: Sender email address
        EMAIL_BRAND_NAME: Brand name used in subjects and signatures
        USER_DB: SQLite database for email logs
    """

    def __init__(self, app=None):
        self.provider = 'smtp'
        self.api_key = None
        self.ses_client = None
        self.sender_email = None
        self.brand_name = 'Hub256'
        self.user_db = None
        self.smtp_host = None
        self.smtp_port = 587
        self.smtp_password = None

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize email service with Flask app configuration"""
        self.provider = (app.config.get('EMAIL_PROVIDER') or 'smtp').lower()
        self.sender_email = app.config.get('EMAIL_ADDRESS')
        self.brand_name = app.config.get('EMAIL_BRAND_NAME', 'Hub256')
        self.user_db = app.config.get('USER_DB')

        if self.provider == 'ses':
            self._init_ses(app)
        elif self.provider == 'resend':
            self._init_resend(app)
        else:
            self.provider = 'smtp'
            self._init_smtp(app)

        logger.info(f"Email service ready (provider: {self.provider}, sender: {self.sender_email})")

    def _init_resend(self, app):
        self.api_key = app.config.get('RESEND_API_KEY')
        if not self.api_key:
            logger.warning("RESEND_API_KEY not configured - email sending disabled")
            return
        resend.api_key = self.api_key

    def _init_ses(self, app):
        aws_region = app.config.get('AWS_REGION', 'us-east-1')
        try:
            self.ses_client = boto3.client('ses', region_name=aws_region)
        except BotoCoreError as e:
            logger.error(f"Failed to initialize SES client: {e}")

    def _init_smtp(self, app):
        self.smtp_host = app.config.get('EMAIL_HOST', 'smtp.gmail.com')
        self.smtp_port = int(app.config.get('EMAIL_PORT', 587))
        self.smtp_password = app.config.get('EMAIL_PASSWORD')
        if not self.smtp_password:
            logger.warning("EMAIL_PASSWORD not configured - SMTP email sending disabled")

    def _log_email(self, recipient: str, subject: str, email_type: str,
                   status: str, error_message: str = None):
        """Log email attempt to database"""
        if not self.user_db:
            return
        try:
            conn = Database.connect(self.user_db)
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS email_logs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        recipient TEXT NOT NULL,
                        subject TEXT NOT NULL,
                        email_type TEXT,
                        status TEXT NOT NULL,
                        error_message TEXT,
                        sent_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.execute("""
                    INSERT INTO email_logs (recipient, subject, email_type, status, error_message)
                    VALUES (?, ?, ?, ?, ?)
                """, (recipient, subject, email_type, status, error_message))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Failed to log email to database: {e}")

    def send_email(self, to: List[str], subject: str, html_body: str,
                   text_body: Optional[str] = None, email_type: str = 'other') -> bool:
        """
        Send an email to each recipient via the configured provider.

        Returns:
            bool: True if at least one email was sent successfully
        """
        if not to:
            logger.error("No recipients provided")
            return False

        if not self.sender_email:
            logger.error("Sender email not configured")
            return False

        valid_recipients = [addr for addr in to if is_valid_email(addr)]
        for addr in set(to) - set(valid_recipients):
            logger.warning(f"Skipping invalid email address: {addr}")

        if not valid_recipients:
            logger.error("No valid recipients after filtering")
            return False

        sent_count = 0
        for recipient in valid_recipients:
            logger.info(f"Sending '{subject}' to {recipient} via {self.provider}")
            try:
                if self.provider == 'ses':
                    success = self._send_via_ses(recipient, subject, html_body, text_body)
                elif self.provider == 'resend':
                    success = self._send_via_resend(recipient, subject, html_body, text_body)
                else:
                    success = self._send_via_smtp(recipient, subject, html_body, text_body)
            except (smtplib.SMTPException, OSError, BotoCoreError, ResendError) as send_error:
                logger.error(f"Error sending to {recipient}: {send_error}")
                self._log_email(recipient, subject, email_type, 'failed', str(send_error))
                continue

            if success:
                self._log_email(recipient, subject, email_type, 'sent')
                sent_count += 1
            else:
                self._log_email(recipient, subject, email_type, 'failed', 'Provider returned failure')

        return sent_count > 0

    def _send_via_resend(self, recipient, subject, html_body, text_body=None):
        if not self.api_key:
            logger.error("Resend API key not configured")
            return False

        email_params = {
            "from": self.sender_email,
            "to": recipient,
            "subject": subject,
            "html": html_body,
        }
        if text_body:
            email_params["text"] = text_body

        r = resend.Emails.send(email_params)
        if r and r.get('id'):
            return True
        logger.error(f"Resend error for {recipient}: {r}")
        return False

    def _send_via_ses(self, recipient, subject, html_body, text_body=None):
        if not self.ses_client:
            logger.error("SES client not initialized")
            return False

        body = {'Html': {'Charset': 'UTF-8', 'Data': html_body}}
        if text_body:
            body['Text'] = {'Charset': 'UTF-8', 'Data': text_body}

        try:
            self.ses_client.send_email(
                Source=self.sender_email,
                Destination={'ToAddresses': [recipient]},
                Message={
                    'Subject': {'Charset': 'UTF-8', 'Data': subject},
                    'Body': body,
                },
            )
            return True
        except ClientError as e:
            logger.error(f"SES error for {recipient}: {e.response['Error']['Message']}")
            return False

    def _send_via_smtp(self, recipient, subject, html_body, text_body=None):
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
        return True

    # ==================== Templates ====================

    def _wrap_html(self, paragraphs):
        body = ''.join(f'<p style="margin:0 0 16px">{p}</p>' for p in paragraphs)
        return (
            '<div style="font-family:Georgia,serif;max-width:600px;margin:0 auto;color:#2a2a2a">'
            f'<h2>{self.brand_name}</h2>{body}'
            f'<p style="color:#666">The {self.brand_name} Team</p></div>'
        )

    def send_password_reset_email(self, email, name, reset_token, reset_url, expires_minutes):
        """Mail the raw reset token and the URL it can be submitted to"""
        subject = 'Password Reset Token'
        text_body = (
            f"Hi {name},\n\n"
            f"Forgot your password? Copy and paste this code\n{reset_token}\n"
            f"Reset your password or submit a patch request with your new password to {reset_url}\n"
            f"The code expires in {expires_minutes} minutes.\n"
            "If you didn't forget your password please ignore this email."
        )
        html_body = self._wrap_html([
            f"Hi {name},",
            "Forgot your password? Copy and paste this code:",
            f"<code>{reset_token}</code>",
            f'Reset your password at <a href="{reset_url}">{reset_url}</a>. '
            f"The code expires in {expires_minutes} minutes.",
            "If you didn't forget your password please ignore this email.",
        ])
        return self.send_email([email], subject, html_body, text_body, email_type='password_reset')

    def send_password_changed_email(self, email, name):
        subject = f'Password Changed - {self.brand_name}'
        text_body = (
            f"Hi {name},\n\n"
            f"Your {self.brand_name} account password has been successfully changed.\n"
            "If you didn't make this change, please contact us immediately."
        )
        html_body = self._wrap_html([
            f"Hi {name},",
            f"Your {self.brand_name} account password has been successfully changed.",
            "If you didn't make this change, please contact us immediately.",
        ])
        return self.send_email([email], subject, html_body, text_body, email_type='password_changed')

    def send_welcome_email(self, email):
        subject = f'Welcome to {self.brand_name}!'
        text_body = (
            f"Thank you for subscribing to {self.brand_name}.\n"
            "You'll hear from us whenever a new post goes live."
        )
        html_body = self._wrap_html([
            f"Thank you for subscribing to {self.brand_name}.",
            "You'll hear from us whenever a new post goes live.",
        ])
        return self.send_email([email], subject, html_body, text_body, email_type='welcome')


email_service = EmailService()
