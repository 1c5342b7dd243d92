from django.contrib import admin
from .models import Issue


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    """Read-only: status changes must go through the API so lifecycle rules apply."""
    list_display = ('id', 'title', 'category', 'priority', 'status', 'reported_by', 'reported_at')
    list_filter = ('status', 'category', 'priority', 'zone')
    search_fields = ('title', 'description', 'address', 'reported_by__username')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
