"""
Stripe webhook handler
"""
import json
from datetime import datetime, timezone
from flask import Blueprint, current_app, request, jsonify
from .models import db, User, Course, Purchase, AuditLog, SubscriptionStatus, PlanId
import stripe

webhook_bp = Blueprint('webhook', __name__)


@webhook_bp.route('/stripe-webhook', methods=['POST'])
def stripe_webhook():
    """Handle Stripe webhook events"""
    payload = request.data
    sig_header = request.headers.get('Stripe-Signature')
    webhook_secret = current_app.config.get('STRIPE_WEBHOOK_SECRET')

    try:
        stripe.Webhook.construct_event(
            payload, sig_header, webhook_secret
        )
    except ValueError:
        return jsonify({'error': 'Invalid payload'}), 400
    except stripe.SignatureVerificationError:
        return jsonify({'error': 'Invalid signature'}), 400

    # Read the verified payload as plain dicts; newer StripeObject is not a dict
    event = json.loads(payload)
    event_type = event['type']
    data = event['data']['object']

    try:
        if event_type == 'checkout.session.completed':
            handle_checkout_completed(data)

        elif event_type in ('customer.subscription.created', 'customer.subscription.updated'):
            handle_subscription_updated(data)

        elif event_type == 'customer.subscription.deleted':
            handle_subscription_deleted(data)

        return jsonify({'status': 'success'}), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Stripe webhook {event_type} failed')
        return jsonify({'error': str(e)}), 500


def handle_checkout_completed(session):
    """Record a course purchase or start a Pro plan"""
    metadata = session.get('metadata') or {}
    user = User.query.filter_by(stripe_customer_id=session.get('customer')).first()
    if not user:
        current_app.logger.warning(f"Checkout {session['id']} for unknown customer {session.get('customer')}")
        return

    if session.get('mode') == 'payment':
        # Payment Links and dashboard checkouts carry no course metadata
        course_id = str(metadata.get('course_id') or '')
        if not course_id.isdigit():
            current_app.logger.warning(f"Checkout {session['id']} has no course metadata, ignoring")
            return
        course = Course.get(int(course_id))
        if not course:
            current_app.logger.warning(f"Checkout {session['id']} for unknown course {course_id}")
            return
        if Purchase.query.filter_by(stripe_purchase_id=session['id']).first():
            return
        Purchase.record(
            user_id=user.id,
            course_id=course.id,
            stripe_purchase_id=session['id'],
            amount=session.get('amount_total'),
        )
        log_billing_event(user, 'course_purchased', f"Course {course.id} via {session['id']}")

    elif session.get('mode') == 'subscription':
        subscription_id = session.get('subscription')
        already_started = subscription_id is not None and user.stripe_subscription_id == subscription_id
        user.stripe_subscription_id = subscription_id
        user.subscription_status = SubscriptionStatus.ACTIVE
        if metadata.get('plan_id') in ('month', 'year'):
            user.plan_id = PlanId(metadata['plan_id'])
        db.session.commit()
        if not already_started:
            log_billing_event(user, 'pro_plan_started', f"Subscription {subscription_id}")


def handle_subscription_updated(subscription):
    """Handle subscription created or updated"""
    user = User.query.filter_by(stripe_customer_id=subscription['customer']).first()

    if user:
        status_map = {
            'active': SubscriptionStatus.ACTIVE,
            'trialing': SubscriptionStatus.ACTIVE,
            'past_due': SubscriptionStatus.PAST_DUE,
            'unpaid': SubscriptionStatus.PAST_DUE,
            'canceled': SubscriptionStatus.CANCELED,
        }

        user.stripe_subscription_id = subscription['id']
        stripe_status = subscription.get('status')
        if stripe_status in status_map:
            user.subscription_status = status_map[stripe_status]

        plan = get_plan_from_subscription(subscription)
        if plan:
            user.plan_id = plan

        period_end = get_period_end(subscription)
        if period_end:
            user.plan_ends_at = datetime.fromtimestamp(period_end, tz=timezone.utc)

        db.session.commit()


def handle_subscription_deleted(subscription):
    """Handle subscription deleted"""
    user = User.query.filter_by(stripe_subscription_id=subscription['id']).first()

    if user:
        user.subscription_status = SubscriptionStatus.CANCELED
        db.session.commit()
        log_billing_event(user, 'pro_plan_canceled', f"Subscription {subscription['id']}")


def get_plan_from_subscription(subscription):
    """Map the subscription's price to a plan"""
    items = subscription.get('items', {}).get('data', [])
    if not items:
        return None

    price_id = items[0].get('price', {}).get('id', '')
    if not price_id:
        return None
    plan_map = {
        current_app.config.get('STRIPE_MONTHLY_PRICE_ID'): PlanId.MONTH,
        current_app.config.get('STRIPE_YEARLY_PRICE_ID'): PlanId.YEAR,
    }
    return plan_map.get(price_id)


def get_period_end(subscription):
    # Newer API versions report the period on subscription items
    if subscription.get('current_period_end'):
        return subscription['current_period_end']
    items = subscription.get('items', {}).get('data', [])
    if items:
        return items[0].get('current_period_end')
    return None


def log_billing_event(user, event_type, description):
    """Log billing event to database"""
    db.session.add(AuditLog(
        user_id=user.id,
        event_type=event_type,
        event_description=description,
        ip_address=request.remote_addr,
    ))
    db.session.commit()
