from rest_framework import serializers

from records.models import Appointment, LabOrder


class ClinicalListQuerySerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1, required=False)
    status = serializers.CharField(max_length=20, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)


class AppointmentStatusSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=[c[0] for c in Appointment.STATUS_CHOICES])
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)


class LabOrderStatusSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=[c[0] for c in LabOrder.STATUS_CHOICES])
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)


class PrescriptionProcessSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['action'] == 'reject' and not (attrs.get('notes') or '').strip():
            raise serializers.ValidationError({'notes': 'a reason is required to reject'})
        return attrs
