"""
Email Service

Transactional email through Resend. Bodies are Jinja templates under templates/emails.
"""
from flask import current_app, render_template
import resend


def send_welcome_email(to_email, name):
    """
    Send the welcome email to a newly provisioned user.

    Args:
        to_email (str): Recipient address
        name (str): Display name, may be empty

    Returns:
        str: Resend message id
    """
    app_url = current_app.config.get('APP_URL', '')
    html = render_template('emails/welcome.html', name=name or 'there', url=app_url)

    response = resend.Emails.send({
        'from': current_app.config['WELCOME_EMAIL_FROM'],
        'to': [to_email],
        'subject': 'Welcome to MasterClass!',
        'html': html,
    })
    message_id = response.get('id') if isinstance(response, dict) else None
    current_app.logger.info(f'Welcome email sent to {to_email} ({message_id})')
    return message_id
