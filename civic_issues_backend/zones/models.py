from django.db import models


class Zone(models.Model):
    name = models.CharField(max_length=100, unique=True)
    # Polygon outline as a list of [lat, lng] pairs
    coordinates = models.JSONField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name
