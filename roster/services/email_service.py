"""
Email service for employee password links.
Uses Flask-Mail for SMTP integration.
"""
import logging
from flask import current_app
from flask_mail import Mail, Message

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """
    Check if mail is properly configured and enabled.
    Prevents 500 errors in dev or misconfigured environments.
    """
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def build_password_link(tenant_slug: str, token: str) -> str:
    """Fill PASSWORD_LINK_TEMPLATE for one tenant and token."""
    cfg = current_app.config
    base_url = cfg.get('PUBLIC_BASE_URL', 'http://localhost:5000').rstrip('/')
    template = cfg.get('PASSWORD_LINK_TEMPLATE') or '{base_url}/tenant/{slug}/api/employee/set-password?token={token}'
    return template.format(base_url=base_url, slug=tenant_slug, token=token)


def send_password_link_email(
    to_email: str,
    employee_name: str,
    link: str,
    organization_name: str,
    ttl_hours: int = 24
) -> bool:
    """
    Send a set-password link to an employee.

    Returns:
        True if sent (or mail is disabled), False on SMTP failure
    """
    try:
        if not _mail_enabled():
            logger.warning(f"[MAIL DISABLED] Password link email skipped for {to_email}")
            return True

        subject = f"Set your password - {organization_name}"

        text_body = f"""
Hello {employee_name},

An administrator of {organization_name} invited you to set a password for
the employee schedule portal:

{link}

This link expires in {ttl_hours} hours.
"""

        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <div style="max-width: 600px; margin: auto; padding: 20px;">
                <h2>{organization_name}</h2>
                <p>Hello <strong>{employee_name}</strong>,</p>
                <p>Set a password for the employee schedule portal:</p>
                <p style="text-align:center; margin: 30px 0;">
                    <a href="{link}" style="padding: 12px 30px; background: #0d6efd; color: #fff; text-decoration: none; border-radius: 5px;">Set password</a>
                </p>
                <p style="font-size: 13px; color: #666;">This link expires in {ttl_hours} hours.</p>
            </div>
        </body>
        </html>
        """

        msg = Message(
            subject=subject,
            recipients=[to_email],
            body=text_body,
            html=html_body,
        )
        mail.send(msg)
        logger.info(f"[EMAIL] Password link sent to {to_email}")
        return True

    except Exception as e:
        logger.exception(f"[EMAIL] Failed to send password link to {to_email}: {e}")
        return False
