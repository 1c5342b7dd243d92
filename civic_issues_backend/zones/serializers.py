from rest_framework import serializers
from .models import Zone


class ZoneSerializer(serializers.ModelSerializer):
    class Meta:
        model = Zone
        fields = ['id', 'name', 'coordinates', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Zone name is required.")
        if Zone.objects.filter(name__iexact=value).exists():
            raise serializers.ValidationError("Zone with this name already exists.")
        return value

    def validate_coordinates(self, value):
        """Expect a non-empty list of [lat, lng] pairs."""
        if not isinstance(value, list) or not value:
            raise serializers.ValidationError("Coordinates must be a non-empty list of [lat, lng] pairs.")
        points = []
        for point in value:
            if not isinstance(point, (list, tuple)) or len(point) != 2:
                raise serializers.ValidationError("Each coordinate must be a [lat, lng] pair.")
            lat, lng = point
            if isinstance(lat, bool) or isinstance(lng, bool) or not all(isinstance(v, (int, float)) for v in point):
                raise serializers.ValidationError("Coordinates must be numbers.")
            if not -90 <= lat <= 90 or not -180 <= lng <= 180:
                raise serializers.ValidationError("Coordinates are out of range.")
            points.append([float(lat), float(lng)])
        return points
