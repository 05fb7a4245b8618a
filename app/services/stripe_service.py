"""Stripe helper functions.

Checkout routes live in app/checkout.py. Webhook processing is in app/stripe_webhook.py.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import stripe

CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


def create_customer(email: Optional[str], name: str, clerk_id: str) -> stripe.Customer:
    params: Dict[str, Any] = {"name": name, "metadata": {"clerk_id": clerk_id}}
    if email:
        params["email"] = email
    return stripe.Customer.create(**params)


def create_course_checkout_session(user, course, app_url: str) -> stripe.checkout.Session:
    """One-time card payment for a single course."""
    product_data: Dict[str, Any] = {"name": course.title}
    if course.image_url:
        product_data["images"] = [course.image_url]

    return stripe.checkout.Session.create(
        customer=user.stripe_customer_id,
        payment_method_types=["card"],
        line_items=[{
            "price_data": {
                "currency": "usd",
                "product_data": product_data,
                "unit_amount": course.unit_amount,
            },
            "quantity": 1,
        }],
        mode="payment",
        billing_address_collection="auto",
        success_url=f"{app_url}/courses/{course.id}/success?session_id={CHECKOUT_SESSION_PLACEHOLDER}",
        cancel_url=f"{app_url}/courses",
        metadata={
            "course_id": str(course.id),
            "user_id": str(user.id),
            "course_title": course.title,
            "course_image_url": course.image_url or "",
        },
    )


def create_pro_plan_checkout_session(user, plan_id: str, price_id: str, app_url: str) -> stripe.checkout.Session:
    """Recurring Pro plan subscription, monthly or yearly."""
    is_yearly = "true" if plan_id == "year" else "false"
    return stripe.checkout.Session.create(
        customer=user.stripe_customer_id,
        line_items=[{"price": price_id, "quantity": 1}],
        mode="subscription",
        billing_address_collection="auto",
        success_url=f"{app_url}/pro/success?session_id={CHECKOUT_SESSION_PLACEHOLDER}&year={is_yearly}",
        cancel_url=f"{app_url}/pro",
        metadata={"user_id": str(user.id), "plan_id": plan_id},
    )
