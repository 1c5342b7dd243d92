from django.db import models
from django.conf import settings
from zones.models import Zone
from . import lifecycle


class Issue(models.Model):
    """Stored form of ``lifecycle.Issue``; mutations go through the lifecycle functions."""
    id = models.CharField(primary_key=True, max_length=32, editable=False)
    title = models.CharField(max_length=lifecycle.TITLE_MAX_LENGTH)
    description = models.TextField()
    category = models.CharField(max_length=32, choices=lifecycle.CATEGORY_CHOICES, default='other')
    priority = models.CharField(max_length=16, choices=lifecycle.PRIORITY_CHOICES, default='medium')
    photos = models.JSONField(default=list)  # image references (URLs or data URLs)
    latitude = models.FloatField()
    longitude = models.FloatField()
    address = models.CharField(max_length=lifecycle.ADDRESS_MAX_LENGTH, null=True, blank=True)
    zone = models.ForeignKey(
        Zone,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='issues'
    )
    status = models.CharField(max_length=20, choices=lifecycle.STATUS_CHOICES, default=lifecycle.STATUS_PENDING)
    reported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='reported_issues'
    )
    reported_at = models.DateTimeField()
    updated_at = models.DateTimeField()
    # Resolution evidence, set together when status becomes resolved
    resolution_photo = models.TextField(null=True, blank=True)
    resolution_notes = models.TextField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='resolved_issues'
    )

    class Meta:
        ordering = ['-reported_at']

    def __str__(self):
        return f"{self.title} ({self.status})"

    def to_domain(self):
        return lifecycle.Issue(
            id=self.id,
            title=self.title,
            description=self.description,
            category=self.category,
            priority=self.priority,
            photos=tuple(self.photos or ()),
            location=lifecycle.Location(
                lat=self.latitude,
                lng=self.longitude,
                address=self.address,
            ),
            status=self.status,
            reported_by=str(self.reported_by_id),
            reported_at=self.reported_at,
            updated_at=self.updated_at,
            zone=str(self.zone_id) if self.zone_id is not None else None,
            resolution_photo=self.resolution_photo,
            resolution_notes=self.resolution_notes,
            resolved_at=self.resolved_at,
            resolved_by=str(self.resolved_by_id) if self.resolved_by_id is not None else None,
        )

    @staticmethod
    def field_values(issue):
        """Column values for a ``lifecycle.Issue``, suitable for update_or_create defaults."""
        return {
            'title': issue.title,
            'description': issue.description,
            'category': issue.category,
            'priority': issue.priority,
            'photos': list(issue.photos),
            'latitude': issue.location.lat,
            'longitude': issue.location.lng,
            'address': issue.location.address,
            'zone_id': issue.zone,
            'status': issue.status,
            'reported_by_id': issue.reported_by,
            'reported_at': issue.reported_at,
            'updated_at': issue.updated_at,
            'resolution_photo': issue.resolution_photo,
            'resolution_notes': issue.resolution_notes,
            'resolved_at': issue.resolved_at,
            'resolved_by_id': issue.resolved_by,
        }
