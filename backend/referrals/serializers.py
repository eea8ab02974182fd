from rest_framework import serializers

from partners.models import Establishment


class TrackVisitSerializer(serializers.Serializer):
    establishmentId = serializers.PrimaryKeyRelatedField(
        queryset=Establishment.objects.filter(is_active=True),
        source="establishment",
    )
    metadata = serializers.DictField(required=False, default=dict)
    referrer = serializers.URLField(required=False, allow_blank=True, default="")


class AttributionSerializer(serializers.Serializer):
    visitId = serializers.IntegerField(source="visit_id")
    establishmentId = serializers.IntegerField(source="establishment_id")
