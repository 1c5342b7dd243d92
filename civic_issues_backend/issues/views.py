from rest_framework import viewsets, permissions, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db import utils as db_utils
from .exceptions import IssueError, NotFound
from .lifecycle import (
    apply_transition,
    create_issue,
    filter_issues,
    issue_statistics,
    resolve as resolve_issue,
    visible_issues,
)
from .markers import issue_markers
from .notifications import notify_reporter
from .permissions import actor_for_user
from .repository import DjangoIssueRepository
from .serializers import (
    CreateIssueSerializer,
    IssueSerializer,
    IssueStatusSerializer,
    ResolveIssueSerializer,
)
import logging

logger = logging.getLogger(__name__)


class IssueViewSet(viewsets.ViewSet):
    """
    Issues as seen by the requesting user.

    - create: any authenticated user
    - list/retrieve/stats/markers: admins see all issues, citizens their own
    - update_status/resolve: admin only (enforced by the lifecycle so the
      response carries the ``unauthorized`` kind)
    """
    permission_classes = [permissions.IsAuthenticated]
    repository_class = DjangoIssueRepository

    def get_repository(self):
        return self.repository_class()

    def get_actor(self):
        return actor_for_user(self.request.user)

    def _visible(self):
        """The visibility-filtered set every read is computed over."""
        return visible_issues(self.get_repository().list(), self.get_actor())

    def _filtered(self):
        params = self.request.query_params
        return filter_issues(
            self._visible(),
            search=params.get('search'),
            status=params.get('status'),
            category=params.get('category'),
        )

    def _issue_error(self, exc):
        logger.warning("Issue request rejected: kind=%s field=%s message=%s", exc.kind, exc.field, exc.message)
        return Response(exc.as_dict(), status=exc.status_code)

    def _database_error(self):
        logger.exception("Database error handling issue request")
        return Response(
            {'kind': 'persistence_error', 'errors': {'service': 'Database unavailable'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    def _invalid(self, serializer):
        logger.warning("Invalid issue payload: %s", serializer.errors)
        return Response({'kind': 'validation_error', 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    def list(self, request):
        try:
            issues = self._filtered()
        except IssueError as exc:
            return self._issue_error(exc)
        except db_utils.DatabaseError:
            return self._database_error()
        return Response(IssueSerializer(issues, many=True).data)

    def retrieve(self, request, pk=None):
        try:
            issue = self.get_repository().load(pk)
            # Issues outside the actor's view do not exist as far as they can tell
            if not visible_issues([issue], self.get_actor()):
                raise NotFound(f'Issue {pk} not found.', field='id')
        except IssueError as exc:
            return self._issue_error(exc)
        except db_utils.DatabaseError:
            return self._database_error()
        return Response(IssueSerializer(issue).data)

    def create(self, request):
        serializer = CreateIssueSerializer(data=request.data)
        if not serializer.is_valid():
            return self._invalid(serializer)

        try:
            issue = create_issue(serializer.to_draft(), self.get_actor())
            self.get_repository().save(issue)
        except IssueError as exc:
            return self._issue_error(exc)
        except db_utils.DatabaseError:
            return self._database_error()
        return Response(IssueSerializer(issue).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch', 'post'], url_path='status')
    def update_status(self, request, pk=None):
        """
        Admin moves an issue between pending, in-progress and rejected, and the reporter is notified.
        """
        serializer = IssueStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return self._invalid(serializer)

        repository = self.get_repository()
        try:
            issue = repository.load(pk)
            issue = apply_transition(issue, self.get_actor(), serializer.validated_data['status'])
            repository.save(issue)
        except IssueError as exc:
            return self._issue_error(exc)
        except db_utils.DatabaseError:
            return self._database_error()

        notify_reporter(issue)
        return Response(IssueSerializer(issue).data)

    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        """
        Admin closes an in-progress issue with a resolution photo and notes.
        """
        serializer = ResolveIssueSerializer(data=request.data)
        if not serializer.is_valid():
            return self._invalid(serializer)

        repository = self.get_repository()
        try:
            issue = repository.load(pk)
            issue = resolve_issue(
                issue,
                self.get_actor(),
                serializer.validated_data['resolution_photo'],
                serializer.validated_data['resolution_notes'],
            )
            repository.save(issue)
        except IssueError as exc:
            return self._issue_error(exc)
        except db_utils.DatabaseError:
            return self._database_error()

        notify_reporter(issue)
        return Response(IssueSerializer(issue).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        try:
            issues = self._visible()
        except db_utils.DatabaseError:
            return self._database_error()
        return Response(issue_statistics(issues))

    @action(detail=False, methods=['get'])
    def markers(self, request):
        try:
            issues = self._filtered()
        except IssueError as exc:
            return self._issue_error(exc)
        except db_utils.DatabaseError:
            return self._database_error()
        return Response(issue_markers(issues))
