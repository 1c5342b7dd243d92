from rest_framework import serializers
from zones.models import Zone
from .lifecycle import IssueDraft


# 1️⃣ Create issue (any authenticated user). Content rules live in lifecycle.create_issue.
class CreateIssueSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, default='')
    description = serializers.CharField(required=False, allow_blank=True, default='')
    category = serializers.CharField(required=False, default='other')
    priority = serializers.CharField(required=False, default='medium')
    photos = serializers.ListField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=False),
        required=False,
        default=list,
    )
    location = serializers.DictField(required=False, allow_null=True, default=None)
    zone = serializers.PrimaryKeyRelatedField(queryset=Zone.objects.all(), required=False, allow_null=True)

    def to_draft(self):
        data = self.validated_data
        zone = data.get('zone')
        return IssueDraft(
            title=data['title'],
            description=data['description'],
            category=data['category'],
            priority=data['priority'],
            photos=tuple(data['photos']),
            location=data['location'],
            zone=str(zone.pk) if zone else None,
        )


# 2️⃣ Admin-only: change status
class IssueStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


# 3️⃣ Admin-only: resolve with evidence
class ResolveIssueSerializer(serializers.Serializer):
    resolution_photo = serializers.CharField(required=False, allow_blank=True, default='')
    resolution_notes = serializers.CharField(required=False, allow_blank=True, default='', trim_whitespace=False)


# 4️⃣ Fetch issue (shared), reads lifecycle.Issue values
class IssueSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    title = serializers.CharField(read_only=True)
    description = serializers.CharField(read_only=True)
    category = serializers.CharField(read_only=True)
    priority = serializers.CharField(read_only=True)
    photos = serializers.ListField(child=serializers.CharField(), read_only=True)
    location = serializers.SerializerMethodField()
    zone = serializers.CharField(read_only=True, allow_null=True)
    status = serializers.CharField(read_only=True)
    reported_by = serializers.CharField(read_only=True)
    reported_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)
    resolution_photo = serializers.CharField(read_only=True, allow_null=True)
    resolution_notes = serializers.CharField(read_only=True, allow_null=True)
    resolved_at = serializers.DateTimeField(read_only=True, allow_null=True)
    resolved_by = serializers.CharField(read_only=True, allow_null=True)

    def get_location(self, obj):
        return {
            'lat': obj.location.lat,
            'lng': obj.location.lng,
            'address': obj.location.address,
        }
