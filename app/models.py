"""
Database Models

Key Models:
- User: Application account mirrored from Clerk, linked to a Stripe customer
- Course: Purchasable course
- Purchase: Completed one-time course checkout
- AuditLog: Provisioning and billing trail
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from flask_login import UserMixin
import enum
from app import db


class SubscriptionStatus(enum.Enum):
    NONE = "none"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class PlanId(enum.Enum):
    MONTH = "month"
    YEAR = "year"


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    clerk_id = db.Column(db.String(255), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(255), default='')
    stripe_customer_id = db.Column(db.String(255), unique=True, nullable=False)

    # Pro plan subscription (kept in sync by the Stripe webhook)
    subscription_status = db.Column(db.Enum(SubscriptionStatus), default=SubscriptionStatus.NONE)
    plan_id = db.Column(db.Enum(PlanId), nullable=True)
    stripe_subscription_id = db.Column(db.String(255), unique=True, nullable=True)
    plan_ends_at = db.Column(db.DateTime(timezone=True))

    welcome_email_sent_at = db.Column(db.DateTime(timezone=True))

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    purchases = db.relationship('Purchase', back_populates='user', lazy='dynamic')

    @property
    def is_pro(self):
        return self.subscription_status == SubscriptionStatus.ACTIVE

    def has_purchased(self, course_id):
        return self.purchases.filter_by(course_id=course_id).first() is not None

    @classmethod
    def get_by_clerk_id(cls, clerk_id):
        return cls.query.filter_by(clerk_id=clerk_id).first()

    @classmethod
    def create_from_identity(cls, clerk_id, email, name, stripe_customer_id):
        """Persist a user for a Clerk account; returns the existing row on redelivery"""
        existing = cls.get_by_clerk_id(clerk_id)
        if existing:
            return existing

        user = cls(
            clerk_id=clerk_id,
            email=email,
            name=name,
            stripe_customer_id=stripe_customer_id,
        )
        db.session.add(user)
        db.session.commit()
        return user


class Course(db.Model):
    __tablename__ = 'courses'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    price = db.Column(db.Numeric(10, 2), nullable=False)  # USD
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    purchases = db.relationship('Purchase', back_populates='course', lazy='dynamic')

    @classmethod
    def get(cls, course_id):
        return db.session.get(cls, course_id)

    @property
    def unit_amount(self):
        """Price in cents, rounded half-up"""
        cents = Decimal(str(self.price)) * 100
        return int(cents.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class Purchase(db.Model):
    __tablename__ = 'purchases'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False)
    stripe_purchase_id = db.Column(db.String(255), unique=True, nullable=False)  # checkout session id
    amount = db.Column(db.Integer)  # cents
    purchased_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    user = db.relationship('User', back_populates='purchases')
    course = db.relationship('Course', back_populates='purchases')

    @classmethod
    def record(cls, user_id, course_id, stripe_purchase_id, amount=None):
        """Record a completed checkout once per session id"""
        existing = cls.query.filter_by(stripe_purchase_id=stripe_purchase_id).first()
        if existing:
            return existing

        purchase = cls(
            user_id=user_id,
            course_id=course_id,
            stripe_purchase_id=stripe_purchase_id,
            amount=amount,
        )
        db.session.add(purchase)
        db.session.commit()
        return purchase


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    event_type = db.Column(db.String(100), nullable=False)
    event_description = db.Column(db.Text)
    ip_address = db.Column(db.String(45))
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
