"""Serializers for request validation and for rendering domain models."""

from rest_framework import serializers

from waitlist.domain import PartySize, PriorityClass, TicketStatus


class AdmitTicketSerializer(serializers.Serializer):
    priority = serializers.ChoiceField(
        choices=[p.value for p in PriorityClass], default=PriorityClass.NORMAL.value
    )
    party_size = serializers.IntegerField(min_value=1, max_value=PartySize.MAX, default=1)
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=False)
    phone = serializers.RegexField(
        r"^\+?[1-9]\d{10,14}$",
        required=False,
        allow_null=True,
        error_messages={"invalid": "Invalid phone number (international format)"},
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class FinishTicketSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CancelTicketSerializer(serializers.Serializer):
    reason = serializers.CharField(
        max_length=500, required=False, allow_blank=True, allow_null=True
    )


class ListingQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=10)


class HistoryQuerySerializer(ListingQuerySerializer):
    status = serializers.CharField(required=False, allow_blank=True)
    search = serializers.CharField(required=False, allow_blank=True)

    def validate_status(self, value: str) -> list[str]:
        statuses = [part.strip() for part in value.split(",") if part.strip()]
        known = {s.value for s in TicketStatus}
        unknown = [s for s in statuses if s not in known]
        if unknown:
            raise serializers.ValidationError(f"Unknown status: {', '.join(unknown)}")
        return statuses


class PositionSerializer(serializers.Serializer):
    position = serializers.IntegerField()
    eta_minutes = serializers.IntegerField()


class TicketSerializer(serializers.Serializer):
    """Serializer for the Ticket domain model."""

    id = serializers.UUIDField(source="id.value")
    queue_id = serializers.UUIDField(source="queue_id.value")
    number = serializers.CharField()
    customer_name = serializers.CharField()
    phone = serializers.CharField(allow_null=True)
    priority = serializers.CharField(source="priority.value")
    status = serializers.CharField(source="status.value")
    origin = serializers.CharField(source="origin.value")
    party_size = serializers.IntegerField()
    priority_fee = serializers.DecimalField(
        source="priority_fee.amount", max_digits=10, decimal_places=2
    )
    arrived_at = serializers.DateTimeField()
    called_at = serializers.DateTimeField(allow_null=True)
    confirmed_at = serializers.DateTimeField(allow_null=True)
    finished_at = serializers.DateTimeField(allow_null=True)
    cancelled_at = serializers.DateTimeField(allow_null=True)
    recall_count = serializers.IntegerField()
    no_show_count = serializers.IntegerField()
    service_duration = serializers.IntegerField(allow_null=True)
    notes = serializers.CharField(allow_null=True)


class QueueEntrySerializer(serializers.Serializer):
    ticket = TicketSerializer()
    position = serializers.IntegerField(source="position.position")
    eta_minutes = serializers.IntegerField(source="position.eta_minutes")


class TicketEventSerializer(serializers.Serializer):
    kind = serializers.CharField(source="kind.value")
    actor_kind = serializers.CharField(source="actor_kind.value")
    actor_id = serializers.CharField()
    metadata = serializers.JSONField()
    created_at = serializers.DateTimeField()
