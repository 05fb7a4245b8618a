"""
Checkout session routes - hand payment collection off to Stripe Checkout
"""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
import stripe
from app import ratelimit
from .auth import identity_required, log_audit_event
from .models import Course, PlanId
from .services import stripe_service

checkout_bp = Blueprint('checkout', __name__)


class CheckoutError(Exception):
    """Validation failure that maps to an HTTP error response"""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class RateLimitExceeded(CheckoutError):
    status_code = 429

    def __init__(self):
        super().__init__('Rate limit exceeded.')


class NotFound(CheckoutError):
    status_code = 404


class MisconfiguredError(CheckoutError):
    status_code = 500


@checkout_bp.errorhandler(CheckoutError)
def handle_checkout_error(error):
    current_app.logger.warning(f'Checkout rejected for {request.path}: {error.message}')
    return jsonify({'error': error.message}), error.status_code


@checkout_bp.errorhandler(stripe.StripeError)
def handle_stripe_error(error):
    current_app.logger.exception('Stripe checkout session creation failed')
    return jsonify({'error': error.user_message or str(error)}), 502


def enforce_rate_limit(prefix):
    if not ratelimit.limit(f'{prefix}:{current_user.id}'):
        raise RateLimitExceeded()


def require_app_url():
    app_url = current_app.config.get('APP_URL')
    if not app_url:
        raise MisconfiguredError('APP_URL is not configured')
    return app_url.rstrip('/')


@checkout_bp.route('/courses/<int:course_id>', methods=['POST'])
@identity_required
def create_checkout_session(course_id):
    """Create a one-time payment checkout for a course"""
    enforce_rate_limit('checkout-rate-limit')

    course = Course.get(course_id)
    if not course:
        raise NotFound('Course not found')

    app_url = require_app_url()

    session = stripe_service.create_course_checkout_session(current_user, course, app_url)
    log_audit_event('checkout_session_created', f'Course {course.id} checkout {session.id}')

    return jsonify({'checkout_url': session.url})


@checkout_bp.route('/pro', methods=['POST'])
@identity_required
def create_pro_plan_checkout_session():
    """Create a Pro plan subscription checkout"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise CheckoutError('Invalid plan')
    try:
        plan = PlanId(data.get('plan_id'))
    except ValueError:
        raise CheckoutError('Invalid plan')

    enforce_rate_limit('pro-plan-rate-limit')

    price_ids = {
        PlanId.MONTH: current_app.config.get('STRIPE_MONTHLY_PRICE_ID'),
        PlanId.YEAR: current_app.config.get('STRIPE_YEARLY_PRICE_ID'),
    }
    price_id = price_ids[plan]
    if not price_id:
        raise MisconfiguredError('PriceId not provided')

    app_url = require_app_url()

    session = stripe_service.create_pro_plan_checkout_session(current_user, plan.value, price_id, app_url)
    log_audit_event('checkout_session_created', f'Pro plan {plan.value} checkout {session.id}')

    return jsonify({'checkout_url': session.url})
