"""
Email Integration Module

Delivery through Postmark (default) or Resend, and the template send
pipeline that records every accepted message in sent_emails.
"""

from .email_client import EmailClient, EmailResult, EmailMessage, EmailStatus, EmailProvider
from .email_sender import EmailSender

__all__ = [
    'EmailClient',
    'EmailResult',
    'EmailMessage',
    'EmailStatus',
    'EmailProvider',
    'EmailSender',
]
