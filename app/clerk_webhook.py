"""
Clerk webhook handler
"""
import json
from datetime import datetime, timezone
from flask import Blueprint, current_app, jsonify, request
from svix.webhooks import Webhook, WebhookVerificationError
from .models import db, User
from .auth import log_audit_event
from .services import stripe_service
from .services.email_service import send_welcome_email

clerk_webhook_bp = Blueprint('clerk_webhook', __name__)

SVIX_HEADERS = ('svix-id', 'svix-timestamp', 'svix-signature')


@clerk_webhook_bp.route('/clerk-webhook', methods=['POST'])
def clerk_webhook():
    """Handle Clerk webhook events"""
    webhook_secret = current_app.config.get('CLERK_WEBHOOK_SECRET')
    if not webhook_secret:
        current_app.logger.error('Missing CLERK_WEBHOOK_SECRET')
        return jsonify({'error': 'Missing CLERK_WEBHOOK_SECRET'}), 500

    headers = {name: request.headers.get(name) for name in SVIX_HEADERS}
    if not all(headers.values()):
        return jsonify({'error': 'Error occurred -- no svix headers'}), 400

    payload = request.get_data(as_text=True)

    try:
        Webhook(webhook_secret).verify(payload, headers)
        event = json.loads(payload)
    except (WebhookVerificationError, ValueError) as e:
        current_app.logger.warning(f'Error verifying Clerk webhook: {e}')
        return jsonify({'error': 'Error occurred -- invalid signature'}), 400

    if event.get('type') == 'user.created':
        try:
            handle_user_created(event['data'])
        except Exception:
            db.session.rollback()
            current_app.logger.exception('Error creating user from Clerk webhook')
            return jsonify({'error': 'Error creating user'}), 500

    return jsonify({'message': 'Webhook processed successfully'}), 200


def handle_user_created(data):
    """Provision Stripe customer and user record for a new Clerk account"""
    clerk_id = data['id']
    email = primary_email(data)
    name = f"{data.get('first_name') or ''} {data.get('last_name') or ''}".strip()

    # Clerk retries deliveries; an earlier one may already have provisioned this account
    user = User.get_by_clerk_id(clerk_id)
    if user:
        current_app.logger.info(f'User {clerk_id} already provisioned')
    else:
        customer = stripe_service.create_customer(email=email, name=name, clerk_id=clerk_id)
        user = User.create_from_identity(
            clerk_id=clerk_id,
            email=email,
            name=name,
            stripe_customer_id=customer.id,
        )
        log_audit_event('user_provisioned', f'User {clerk_id} linked to {customer.id}', user_id=user.id)

    # A failed send answers 500 so the redelivery tries again
    if current_app.config.get('SEND_WELCOME_EMAIL') and user.email and not user.welcome_email_sent_at:
        send_welcome_email(user.email, user.name)
        user.welcome_email_sent_at = datetime.now(timezone.utc)
        db.session.commit()


def primary_email(data):
    """First email address on the Clerk payload, if any"""
    addresses = data.get('email_addresses') or []
    if not addresses:
        return None
    return addresses[0].get('email_address')
