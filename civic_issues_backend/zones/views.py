from rest_framework import viewsets, mixins
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend
from issues.permissions import IsAdminRole
from .models import Zone
from .serializers import ZoneSerializer
import logging

logger = logging.getLogger(__name__)


# GET /zones/ for any authenticated user, POST /zones/ for admins.
class ZoneViewSet(mixins.CreateModelMixin,
                  mixins.ListModelMixin,
                  mixins.RetrieveModelMixin,
                  viewsets.GenericViewSet):
    queryset = Zone.objects.all()
    serializer_class = ZoneSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['name']  # e.g., ?name=Downtown

    def get_permissions(self):
        if self.action == 'create':
            return [IsAdminRole()]
        return [IsAuthenticated()]

    def perform_create(self, serializer):
        zone = serializer.save()
        logger.info("Admin %s created zone %s", self.request.user.username, zone.name)
