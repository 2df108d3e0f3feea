from rest_framework import serializers


class RecommendationQuerySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, trim_whitespace=True)


class AutocompleteQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=128, required=False, allow_blank=True, trim_whitespace=True)
    limit = serializers.IntegerField(min_value=1, max_value=10, required=False)
