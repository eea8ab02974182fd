import ipaddress

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from referrals.serializers import AttributionSerializer, TrackVisitSerializer
from referrals.services.attribution import current_attribution, track_visit


def _client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    candidate = forwarded.split(",")[0].strip() if forwarded else request.META.get("REMOTE_ADDR", "")
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


class TrackVisitView(APIView):
    """Record a landing on a partner link and hand back the attribution token."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        serializer = TrackVisitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        visit, token = track_visit(
            establishment=serializer.validated_data["establishment"],
            metadata=serializer.validated_data["metadata"],
            ip_address=_client_ip(request),
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
            referrer_url=serializer.validated_data["referrer"],
        )
        return Response(
            {
                "visitId": visit.pk,
                "establishmentId": visit.establishment_id,
                "token": token,
                "expiresAt": visit.expires_at,
            },
            status=status.HTTP_201_CREATED,
        )


class CurrentAttributionView(APIView):
    permission_classes: list = []
    authentication_classes: list = []

    def get(self, request, *args, **kwargs):
        attribution = current_attribution(request.query_params.get("token"))
        if attribution is None:
            return Response({"detail": "No active referral."}, status=status.HTTP_404_NOT_FOUND)
        return Response(AttributionSerializer(attribution).data)
