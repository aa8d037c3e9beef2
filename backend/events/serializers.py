# events/serializers.py
"""Serializers for the event audit API."""

from rest_framework import serializers

from events.models import BusinessEvent, EventBookmark


# Payload keys that name the business document an event is about, in
# the order they are looked up.
DOCUMENT_KEYS = ("entry_number", "number", "code", "sku", "name")


def document_label(data) -> str:
    if not isinstance(data, dict):
        return ""
    for key in DOCUMENT_KEYS:
        if data.get(key):
            return str(data[key])
    return ""


class EventRowSerializer(serializers.ModelSerializer):
    """One row of the audit trail."""

    actor_email = serializers.EmailField(source="caused_by_user.email", read_only=True, default=None)
    document = serializers.SerializerMethodField()

    class Meta:
        model = BusinessEvent
        fields = [
            "id", "company_sequence", "event_type", "aggregate_type", "aggregate_id",
            "sequence", "document", "actor_email", "origin", "occurred_at",
        ]
        read_only_fields = fields

    def get_document(self, obj):
        return document_label(obj.data)


class EventDetailSerializer(EventRowSerializer):
    """Full event with payload and causation links."""

    caused_event_ids = serializers.SerializerMethodField()

    class Meta(EventRowSerializer.Meta):
        fields = EventRowSerializer.Meta.fields + [
            "idempotency_key", "schema_version", "data", "metadata",
            "caused_by_event", "caused_event_ids", "recorded_at",
        ]
        read_only_fields = fields

    def get_caused_event_ids(self, obj):
        return list(obj.child_events.values_list("id", flat=True)[:100])


class IntegrityReportSerializer(serializers.Serializer):
    total_events = serializers.IntegerField()
    max_sequence = serializers.IntegerField()
    sequence_gaps = serializers.ListField(child=serializers.ListField(child=serializers.IntegerField()))
    counter_behind_stream = serializers.BooleanField()
    is_valid = serializers.BooleanField()


class IntegritySummarySerializer(serializers.Serializer):
    total_events = serializers.IntegerField()
    max_sequence = serializers.IntegerField()
    counter_sequence = serializers.IntegerField()
    has_potential_gaps = serializers.BooleanField()
    origin_breakdown = serializers.DictField(child=serializers.IntegerField())


class BookmarkSerializer(serializers.ModelSerializer):
    """How far a projection has read the company's stream."""

    position = serializers.IntegerField(source="last_event.company_sequence", read_only=True, default=None)

    class Meta:
        model = EventBookmark
        fields = ["consumer_name", "position", "last_processed_at", "is_paused", "error_count", "last_error"]
        read_only_fields = fields
