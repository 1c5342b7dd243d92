"""
Persistence for lifecycle issues.

The lifecycle functions never touch storage; views load an issue through a
repository, hand it to the lifecycle, and save whatever comes back. Any class
with ``load``/``save``/``list`` works, so the REST views and the tests can swap
the database for the in-memory store.
"""

import logging
from django.db import transaction
from .exceptions import NotFound
from .models import Issue as IssueRecord

logger = logging.getLogger(__name__)


class IssueRepository:
    def load(self, issue_id):
        """Return the issue with ``issue_id`` or raise NotFound."""
        raise NotImplementedError

    def save(self, issue):
        raise NotImplementedError

    def list(self):
        raise NotImplementedError


class DjangoIssueRepository(IssueRepository):
    """Issues stored in the ``issues_issue`` table."""

    def load(self, issue_id):
        try:
            record = IssueRecord.objects.get(pk=issue_id)
        except IssueRecord.DoesNotExist:
            raise NotFound(f'Issue {issue_id} not found.', field='id')
        return record.to_domain()

    def save(self, issue):
        with transaction.atomic():
            _, created = IssueRecord.objects.update_or_create(
                pk=issue.id,
                defaults=IssueRecord.field_values(issue),
            )
        logger.debug('Saved issue %s (created=%s, status=%s)', issue.id, created, issue.status)

    def list(self):
        return [record.to_domain() for record in IssueRecord.objects.all()]


class InMemoryIssueRepository(IssueRepository):
    """Dict-backed store, the server-side stand-in for the browser storage backend."""

    def __init__(self, issues=()):
        self._issues = {}
        for issue in issues:
            self.save(issue)

    def load(self, issue_id):
        try:
            return self._issues[issue_id]
        except KeyError:
            raise NotFound(f'Issue {issue_id} not found.', field='id')

    def save(self, issue):
        # Issues are frozen, so storing the value itself is safe
        self._issues[issue.id] = issue

    def list(self):
        return list(self._issues.values())
