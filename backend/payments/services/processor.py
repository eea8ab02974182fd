from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional
from uuid import uuid4

import stripe
from django.conf import settings

from core.exceptions import InvalidRequest, InvalidSignature, ProcessorError

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSessionStub:
    """Offline checkout session: `cs_test_` / `pi_test_` ids and a preview URL on the frontend."""

    id: str
    payment_intent: str
    payment_status: str
    url: str
    metadata: dict


def _secret_key() -> str:
    return getattr(settings, "STRIPE_SECRET_KEY", "") or ""


def should_use_stub() -> bool:
    """Stay offline when explicitly asked to or when no secret key is configured."""
    return bool(getattr(settings, "STRIPE_USE_STUB", False)) or not _secret_key()


def configure_stripe():
    api_key = _secret_key()
    if not api_key:
        raise RuntimeError("STRIPE_SECRET_KEY is not configured.")
    stripe.api_key = api_key


def build_checkout_preview_url(*, session_id: str, amount_minor: int, activity_id: Any) -> str:
    return (
        f"{settings.FRONTEND_URL.rstrip('/')}/payments/preview?"
        f"activity={activity_id}&amount={amount_minor}&session={session_id}"
    )


def _stub_checkout_session(*, amount_minor: int, metadata: dict) -> CheckoutSessionStub:
    session_id = f"cs_test_{uuid4().hex}"
    return CheckoutSessionStub(
        id=session_id,
        payment_intent=f"pi_test_{uuid4().hex}",
        payment_status="unpaid",
        url=build_checkout_preview_url(
            session_id=session_id,
            amount_minor=amount_minor,
            activity_id=metadata.get("activity_id", ""),
        ),
        metadata=metadata,
    )


def create_checkout_session(
    *,
    line_items: list[dict],
    metadata: dict[str, str],
    success_url: str,
    cancel_url: str,
    payment_intent_data: Optional[dict] = None,
    customer_email: str = "",
):
    """
    Create a Stripe Checkout session (or stub equivalent).

    Returns an object exposing `id`, `payment_intent`, `payment_status` and
    `url`. Any Stripe failure surfaces as ProcessorError.
    """
    amount_minor = sum(item["price_data"]["unit_amount"] * item["quantity"] for item in line_items)
    if should_use_stub():
        return _stub_checkout_session(amount_minor=amount_minor, metadata=metadata)

    configure_stripe()
    params: dict[str, Any] = {
        "mode": "payment",
        "payment_method_types": ["card"],
        "line_items": line_items,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
    }
    if payment_intent_data:
        params["payment_intent_data"] = payment_intent_data
    if customer_email:
        params["customer_email"] = customer_email

    try:
        return stripe.checkout.Session.create(**params)
    except stripe.StripeError as exc:
        logger.exception("Stripe checkout session creation failed: %s", exc)
        raise ProcessorError(f"Payment processor rejected the checkout session: {exc}") from exc


@dataclass
class PaymentLinkStub:
    id: str
    url: str


def create_payment_link(
    *,
    amount_minor: int,
    currency: str,
    product_name: str,
    description: str,
    metadata: dict[str, str],
    redirect_url: str,
):
    """
    Create a one-item Stripe Payment Link whose PaymentIntent carries `metadata`.

    Payment Links only accept existing prices, so a one-off Price is created
    first. Any Stripe failure surfaces as ProcessorError.
    """
    if should_use_stub():
        link_id = f"plink_test_{uuid4().hex}"
        return PaymentLinkStub(
            id=link_id,
            url=f"{settings.FRONTEND_URL.rstrip('/')}/payments/link-preview?link={link_id}&amount={amount_minor}",
        )

    configure_stripe()
    try:
        price = stripe.Price.create(
            currency=currency,
            unit_amount=amount_minor,
            product_data={"name": product_name},
        )
        return stripe.PaymentLink.create(
            line_items=[{"price": price.id, "quantity": 1}],
            metadata=metadata,
            payment_intent_data={"description": description, "metadata": metadata},
            after_completion={"type": "redirect", "redirect": {"url": redirect_url}},
        )
    except stripe.StripeError as exc:
        logger.exception("Stripe payment link creation failed: %s", exc)
        raise ProcessorError(f"Payment processor rejected the payment link: {exc}") from exc


def verify_webhook(payload: bytes, sig_header: Optional[str]) -> dict:
    """Verify the Stripe-Signature header against the raw body and return the decoded event."""
    secret = settings.STRIPE_WEBHOOK_SECRET
    if not secret:
        raise RuntimeError("STRIPE_WEBHOOK_SECRET is not configured.")
    if not sig_header:
        raise InvalidSignature("Missing Stripe-Signature header.")

    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidSignature("Webhook body is not valid UTF-8.") from exc

    try:
        stripe.WebhookSignature.verify_header(
            body,
            sig_header,
            secret,
            settings.STRIPE_WEBHOOK_TOLERANCE,
        )
    except stripe.SignatureVerificationError as exc:
        raise InvalidSignature(str(exc)) from exc

    try:
        return json.loads(body)
    except ValueError as exc:
        raise InvalidRequest("Webhook body is not valid JSON.") from exc
