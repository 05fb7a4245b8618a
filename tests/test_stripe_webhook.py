"""
Stripe Webhook Tests
"""
import pytest

from conftest import stripe_event, stripe_signature

SECRET = 'whsec_stripe_test'


def post_event(client, payload, signature=None):
    return client.post(
        '/stripe-webhook',
        data=payload,
        headers={'Stripe-Signature': signature or stripe_signature(SECRET, payload)},
        content_type='application/json',
    )


class TestSignature:

    def test_invalid_signature(self, client):
        payload = stripe_event('checkout.session.completed', {'id': 'cs_1'})
        response = post_event(client, payload, signature=stripe_signature('whsec_other', payload))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid signature'

    def test_invalid_payload(self, client):
        payload = 'not json'
        response = post_event(client, payload)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid payload'


class TestCheckoutCompleted:
    """checkout.session.completed"""

    def test_records_course_purchase(self, client, app, test_user, test_course):
        """Payment checkouts become purchases"""
        from app.models import Purchase, User

        payload = stripe_event('checkout.session.completed', {
            'id': 'cs_test_paid',
            'object': 'checkout.session',
            'mode': 'payment',
            'customer': test_user.stripe_customer_id,
            'amount_total': 4999,
            'metadata': {'course_id': str(test_course.id), 'user_id': str(test_user.id)},
        })

        response = post_event(client, payload)
        assert response.status_code == 200

        with app.app_context():
            purchase = Purchase.query.filter_by(stripe_purchase_id='cs_test_paid').one()
            assert purchase.user_id == test_user.id
            assert purchase.course_id == test_course.id
            assert purchase.amount == 4999
            assert User.get_by_clerk_id(test_user.clerk_id).has_purchased(test_course.id)

    def test_purchase_recorded_once(self, client, app, test_user, test_course):
        """Redelivered events do not duplicate purchases"""
        from app.models import Purchase

        payload = stripe_event('checkout.session.completed', {
            'id': 'cs_test_paid',
            'mode': 'payment',
            'customer': test_user.stripe_customer_id,
            'metadata': {'course_id': str(test_course.id)},
        })
        post_event(client, payload)
        post_event(client, payload)

        with app.app_context():
            assert Purchase.query.count() == 1

    def test_starts_pro_plan(self, client, app, test_user):
        """Subscription checkouts activate the Pro plan"""
        from app.models import User, PlanId

        payload = stripe_event('checkout.session.completed', {
            'id': 'cs_test_sub',
            'mode': 'subscription',
            'customer': test_user.stripe_customer_id,
            'subscription': 'sub_123',
            'metadata': {'user_id': str(test_user.id), 'plan_id': 'year'},
        })

        assert post_event(client, payload).status_code == 200

        with app.app_context():
            user = User.get_by_clerk_id(test_user.clerk_id)
            assert user.is_pro
            assert user.plan_id == PlanId.YEAR
            assert user.stripe_subscription_id == 'sub_123'

    @pytest.mark.parametrize('metadata', [{}, {'course_id': 'abc'}, None])
    def test_payment_without_course_metadata(self, client, app, test_user, metadata):
        """Checkouts not created by the app (Payment Links, dashboard) are acknowledged"""
        from app.models import Purchase

        payload = stripe_event('checkout.session.completed', {
            'id': 'cs_test_link',
            'mode': 'payment',
            'customer': test_user.stripe_customer_id,
            'amount_total': 1500,
            'metadata': metadata,
        })

        assert post_event(client, payload).status_code == 200
        with app.app_context():
            assert Purchase.query.count() == 0

    def test_pro_plan_redelivery_audited_once(self, client, app, test_user):
        """Redelivered subscription checkouts do not duplicate audit rows"""
        from app.models import AuditLog

        payload = stripe_event('checkout.session.completed', {
            'id': 'cs_test_sub',
            'mode': 'subscription',
            'customer': test_user.stripe_customer_id,
            'subscription': 'sub_123',
            'metadata': {'plan_id': 'month'},
        })
        assert post_event(client, payload).status_code == 200
        assert post_event(client, payload).status_code == 200

        with app.app_context():
            assert AuditLog.query.filter_by(event_type='pro_plan_started').count() == 1

    def test_purchase_redelivery_audited_once(self, client, app, test_user, test_course):
        from app.models import AuditLog

        payload = stripe_event('checkout.session.completed', {
            'id': 'cs_test_paid',
            'mode': 'payment',
            'customer': test_user.stripe_customer_id,
            'metadata': {'course_id': str(test_course.id)},
        })
        post_event(client, payload)
        post_event(client, payload)

        with app.app_context():
            assert AuditLog.query.filter_by(event_type='course_purchased').count() == 1

    def test_unknown_customer_ignored(self, client, app):
        from app.models import Purchase

        payload = stripe_event('checkout.session.completed', {
            'id': 'cs_test_orphan',
            'mode': 'payment',
            'customer': 'cus_unknown',
            'metadata': {'course_id': '1'},
        })

        assert post_event(client, payload).status_code == 200
        with app.app_context():
            assert Purchase.query.count() == 0


class TestSubscriptionLifecycle:

    def subscription(self, test_user, status='active', price='price_pro_monthly'):
        return {
            'id': 'sub_123',
            'object': 'subscription',
            'customer': test_user.stripe_customer_id,
            'status': status,
            'items': {
                'object': 'list',
                'data': [{'price': {'id': price}, 'current_period_end': 1893456000}],
            },
        }

    def test_updated_sets_plan(self, client, app, test_user):
        from app.models import User, PlanId, SubscriptionStatus

        payload = stripe_event('customer.subscription.updated', self.subscription(test_user))
        assert post_event(client, payload).status_code == 200

        with app.app_context():
            user = User.get_by_clerk_id(test_user.clerk_id)
            assert user.subscription_status == SubscriptionStatus.ACTIVE
            assert user.plan_id == PlanId.MONTH
            assert user.plan_ends_at is not None

    def test_past_due(self, client, app, test_user):
        from app.models import User, SubscriptionStatus

        payload = stripe_event('customer.subscription.updated', self.subscription(test_user, status='past_due'))
        post_event(client, payload)

        with app.app_context():
            user = User.get_by_clerk_id(test_user.clerk_id)
            assert user.subscription_status == SubscriptionStatus.PAST_DUE
            assert not user.is_pro

    def test_deleted_cancels(self, client, app, test_user):
        from app.models import User, SubscriptionStatus

        post_event(client, stripe_event('customer.subscription.created', self.subscription(test_user)))
        post_event(client, stripe_event('customer.subscription.deleted', self.subscription(test_user, status='canceled')))

        with app.app_context():
            user = User.get_by_clerk_id(test_user.clerk_id)
            assert user.subscription_status == SubscriptionStatus.CANCELED
            assert not user.is_pro
