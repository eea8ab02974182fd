import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import InvalidSignature, SettlementError

from .serializers import CheckoutRequestSerializer, CheckoutSessionResponseSerializer
from .services.checkout import CheckoutIntent, build_checkout_session
from .services.events import parse_event
from .services.processor import verify_webhook
from .services.settlement import process_event

logger = logging.getLogger(__name__)


class CheckoutSessionView(APIView):
    """Open a hosted checkout session for an activity booking."""

    permission_classes: list = []

    def post(self, request, *args, **kwargs):
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        customer_id = data["customerId"]
        if not customer_id and request.user and request.user.is_authenticated:
            customer_id = str(request.user.pk)

        intent = CheckoutIntent(
            activity_id=data["activityId"],
            provider_id=data["providerId"],
            participant_count=data["participantCount"],
            base_amount=data["amount"],
            success_url=data["successUrl"],
            cancel_url=data["cancelUrl"],
            commission_percent=data.get("commissionPercent"),
            establishment_id=data.get("establishmentId"),
            customer_id=customer_id,
            customer_email=data["customerEmail"],
            attribution_token=data.get("referralToken"),
        )
        try:
            result = build_checkout_session(intent)
        except SettlementError as exc:
            return Response(exc.as_payload(), status=exc.status_code)

        return Response(CheckoutSessionResponseSerializer(result).data, status=status.HTTP_201_CREATED)


class PaymentWebhookView(APIView):
    """Receive Stripe events. The signature is the only authentication."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")

        try:
            body = verify_webhook(payload, sig_header)
        except RuntimeError as exc:
            logger.error("Stripe webhook secret not configured: %s", exc)
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except InvalidSignature as exc:
            logger.warning(
                "Rejected Stripe webhook with invalid signature from %s: %s",
                request.META.get("REMOTE_ADDR", "unknown"),
                exc,
            )
            return Response(exc.as_payload(), status=exc.status_code)
        except SettlementError as exc:
            logger.warning("Malformed Stripe webhook body: %s", exc)
            return Response(exc.as_payload(), status=exc.status_code)

        try:
            event = parse_event(body)
            outcome = process_event(event)
        except SettlementError as exc:
            return Response(exc.as_payload(), status=exc.status_code)

        return Response({"received": True, "outcome": outcome.value})
