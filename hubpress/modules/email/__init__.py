"""
Email Module
============

Provides email sending through SMTP, Resend or Amazon SES, plus the
password reset, password changed and subscriber welcome templates.
"""

from .email_service import EmailService, email_service, is_valid_email

__all__ = ['EmailService', 'email_service', 'is_valid_email']
