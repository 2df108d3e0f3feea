from rest_framework import serializers

from records.models import BillingItem


class UnbilledQuerySerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)


class IntegrityQuerySerializer(serializers.Serializer):
    refresh = serializers.BooleanField(required=False, default=False)


class GenerateBillSerializer(serializers.Serializer):
    serviceType = serializers.ChoiceField(choices=[c[0] for c in BillingItem.LINK_CHOICES])
    id = serializers.IntegerField(min_value=1)


class SnapshotListQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


class DiscountSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)


class PaymentSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=['cash', 'card', 'upi', 'insurance', 'other'])
    details = serializers.DictField(required=False)
