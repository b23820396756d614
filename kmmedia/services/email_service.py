"""
Email service for sending notifications
"""

import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr
from flask import current_app
from kmmedia.templates.email_templates import (
    get_notification_email_template, get_payment_receipt_template
)
from kmmedia.utils.exceptions import EmailError


class EmailService:
    """Email service class"""

    @staticmethod
    def is_enabled() -> bool:
        return bool(current_app.config.get('MAIL_ENABLED'))

    @staticmethod
    def send_notification_email(to_email: str, full_name: str, subject: str, message: str) -> bool:
        """
        Send notification email

        Args:
            to_email: Recipient email
            full_name: Recipient full name
            subject: Email subject
            message: Email message

        Returns:
            True if sent successfully
        """
        html_content = get_notification_email_template(full_name, subject, message)
        return EmailService._send_email_html(to_email, subject, html_content)

    @staticmethod
    def send_payment_receipt(to_email: str, full_name: str, course_name: str, payment_type: str,
                             amount: str, currency: str, reference: str, remaining_balance: str = None) -> bool:
        """Send the receipt for a successful payment"""
        html_content = get_payment_receipt_template(
            full_name, course_name, payment_type, amount, currency, reference, remaining_balance
        )
        return EmailService._send_email_html(to_email, "KM Media Payment Receipt", html_content)

    @staticmethod
    def _send_email_html(to_email: str, subject: str, html_content: str) -> bool:
        """Send HTML email"""
        # Get email configuration
        mail_server = current_app.config.get('MAIL_SERVER', 'smtp.gmail.com')
        mail_port = current_app.config.get('MAIL_PORT', 587)
        mail_username = current_app.config.get('MAIL_USERNAME')
        mail_password = current_app.config.get('MAIL_PASSWORD')

        if not all([mail_username, mail_password]):
            raise EmailError("Email configuration not found")

        # Create message
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = formataddr(("KM Media Training Institute", mail_username))
        msg['To'] = to_email
        msg.attach(MIMEText(html_content, 'html'))

        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(mail_server, mail_port) as server:
                if current_app.config.get('MAIL_USE_TLS', True):
                    server.starttls(context=context)
                server.login(mail_username, mail_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailError(f"Failed to send email: {str(e)}")

        return True
