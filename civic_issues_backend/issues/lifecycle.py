"""
Issue lifecycle core.

Pure functions over immutable ``Issue`` values. Nothing in here touches the
database, the request or any shared state: callers load an issue, pass it in
together with the acting user, and persist whatever comes back.

- create_issue: validate a draft and build a pending issue
- apply_transition: admin-only move between pending / in-progress / rejected
- resolve: admin-only close of an in-progress issue with photo + notes
- visible_issues / filter_issues / issue_statistics: read side
"""

import logging
import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from .exceptions import InvalidTransition, Unauthorized, ValidationError

logger = logging.getLogger(__name__)

# -------------------------------
# Enumerations
# -------------------------------
STATUS_PENDING = 'pending'
STATUS_IN_PROGRESS = 'in-progress'
STATUS_RESOLVED = 'resolved'
STATUS_REJECTED = 'rejected'

STATUS_CHOICES = [
    (STATUS_PENDING, 'Pending'),
    (STATUS_IN_PROGRESS, 'In Progress'),
    (STATUS_RESOLVED, 'Resolved'),
    (STATUS_REJECTED, 'Rejected'),
]

# Targets reachable through apply_transition. Resolved only via resolve().
TRANSITION_TARGETS = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_REJECTED)

CATEGORY_CHOICES = [
    ('garbage', 'Garbage/Waste'),
    ('pothole', 'Pothole'),
    ('dirty-toilet', 'Dirty Toilet'),
    ('street-light', 'Street Light'),
    ('water-leak', 'Water Leak'),
    ('broken-sign', 'Broken Sign'),
    ('other', 'Other'),
]

PRIORITY_CHOICES = [
    ('low', 'Low'),
    ('medium', 'Medium'),
    ('high', 'High'),
    ('urgent', 'Urgent'),
]

ROLE_CITIZEN = 'citizen'
ROLE_ADMIN = 'admin'

ROLE_CHOICES = [
    (ROLE_CITIZEN, 'Citizen'),
    (ROLE_ADMIN, 'Admin'),
]

STATUSES = [value for value, _ in STATUS_CHOICES]
CATEGORIES = [value for value, _ in CATEGORY_CHOICES]
PRIORITIES = [value for value, _ in PRIORITY_CHOICES]

# Value meaning "no filter" in dashboard queries
ALL = 'all'

# Column limits of the stored issue
TITLE_MAX_LENGTH = 200
ADDRESS_MAX_LENGTH = 255


# -------------------------------
# Value types
# -------------------------------
@dataclass(frozen=True)
class Actor:
    id: str
    role: str = ROLE_CITIZEN

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float
    address: Optional[str] = None

    @classmethod
    def coerce(cls, value) -> 'Location':
        """Build a Location from a Location or a ``{'lat', 'lng', 'address'}`` mapping."""
        if value is None:
            raise ValidationError('Location is required.', field='location')
        if isinstance(value, Location):
            lat, lng, address = value.lat, value.lng, value.address
        elif isinstance(value, dict):
            lat, lng, address = value.get('lat'), value.get('lng'), value.get('address')
        else:
            raise ValidationError('Location must provide lat and lng.', field='location')

        if address is not None and not isinstance(address, str):
            raise ValidationError('Location address must be text.', field='location')
        address = (address or '').strip() or None
        if address and len(address) > ADDRESS_MAX_LENGTH:
            raise ValidationError(
                f'Location address must be at most {ADDRESS_MAX_LENGTH} characters.', field='location'
            )
        return cls(
            lat=_coordinate(lat, 'lat', 90),
            lng=_coordinate(lng, 'lng', 180),
            address=address,
        )


@dataclass(frozen=True)
class IssueDraft:
    """Citizen-supplied fields for a new issue."""
    title: str
    description: str
    photos: Tuple[str, ...] = ()
    location: object = None
    category: str = 'other'
    priority: str = 'medium'
    zone: Optional[str] = None


@dataclass(frozen=True)
class Issue:
    id: str
    title: str
    description: str
    category: str
    priority: str
    photos: Tuple[str, ...]
    location: Location
    status: str
    reported_by: str
    reported_at: datetime
    updated_at: datetime
    zone: Optional[str] = None
    resolution_photo: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.status == STATUS_RESOLVED

    @property
    def has_resolution(self) -> bool:
        return all([
            self.resolution_photo,
            self.resolution_notes,
            self.resolved_at,
            self.resolved_by,
        ])


# -------------------------------
# Helpers
# -------------------------------
def _now(now=None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    # naive timestamps are taken as UTC
    if now.tzinfo is None or now.utcoffset() is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _touch(issue: Issue, now: datetime) -> datetime:
    # updated_at never moves before reported_at
    return max(now, issue.reported_at)


def _coordinate(value, name, limit) -> float:
    if value is None or value == '':
        raise ValidationError(f'Location {name} is required.', field='location')
    if isinstance(value, bool):
        raise ValidationError(f'Location {name} must be a number.', field='location')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Location {name} must be a number.', field='location')
    if math.isnan(number) or not -limit <= number <= limit:
        raise ValidationError(
            f'Location {name} must be between -{limit} and {limit}.', field='location'
        )
    return number


def _required_text(value, name, max_length=None) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'{name.capitalize()} must be text.', field=name)
    text = (value or '').strip()
    if not text:
        raise ValidationError(f'{name.capitalize()} is required.', field=name)
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f'{name.capitalize()} must be at most {max_length} characters.', field=name)
    return text


def _photos(values) -> Tuple[str, ...]:
    if isinstance(values, str) or values is None:
        values = [values] if values else []
    elif not isinstance(values, (list, tuple)):
        raise ValidationError('Photos must be a list of image references.', field='photos')
    photos = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError('Photo references must be non-empty.', field='photos')
        photos.append(value.strip())
    if not photos:
        raise ValidationError('At least one photo is required.', field='photos')
    return tuple(photos)


def _require_admin(actor: Actor, action: str):
    if not actor.is_admin:
        logger.warning('Actor %s (%s) may not %s', actor.id, actor.role, action)
        raise Unauthorized(f'Only admins can {action}.', field='role')


# -------------------------------
# Creation
# -------------------------------
def create_issue(draft: IssueDraft, actor: Actor, now=None) -> Issue:
    """Validate ``draft`` and return a new pending issue reported by ``actor``.

    Any actor may report. Raises ValidationError naming the offending field.
    """
    title = _required_text(draft.title, 'title', max_length=TITLE_MAX_LENGTH)
    description = _required_text(draft.description, 'description')
    location = Location.coerce(draft.location)
    photos = _photos(draft.photos)

    if draft.category not in CATEGORIES:
        raise ValidationError(f'Unknown category: {draft.category!r}.', field='category')
    if draft.priority not in PRIORITIES:
        raise ValidationError(f'Unknown priority: {draft.priority!r}.', field='priority')

    timestamp = _now(now)
    issue = Issue(
        id=uuid.uuid4().hex,
        title=title,
        description=description,
        category=draft.category,
        priority=draft.priority,
        photos=photos,
        location=location,
        status=STATUS_PENDING,
        reported_by=str(actor.id),
        reported_at=timestamp,
        updated_at=timestamp,
        zone=str(draft.zone) if draft.zone not in (None, '') else None,
    )
    logger.info('Issue %s created by %s (%s)', issue.id, issue.reported_by, issue.category)
    return issue


# -------------------------------
# Lifecycle Engine
# -------------------------------
def can_transition(issue: Issue, new_status: str) -> Tuple[bool, str]:
    """Check the status rules only; role is not considered."""
    if issue.is_resolved:
        return False, 'Resolved issues cannot change status.'
    if new_status == STATUS_RESOLVED:
        return False, 'Use the resolve action to resolve an issue.'
    if new_status not in TRANSITION_TARGETS:
        return False, f'Invalid status: {new_status!r}. Valid targets: {list(TRANSITION_TARGETS)}'
    return True, f'Transition {issue.status} -> {new_status} allowed'


def apply_transition(issue: Issue, actor: Actor, new_status: str, now=None) -> Issue:
    """Return ``issue`` moved to ``new_status``.

    Only admins may transition; resolved issues are terminal and ``resolved``
    itself is never a valid target here.
    """
    _require_admin(actor, 'change issue status')

    allowed, message = can_transition(issue, new_status)
    if not allowed:
        logger.warning('Issue %s: %s', issue.id, message)
        raise InvalidTransition(message, field='status')

    updated = replace(issue, status=new_status, updated_at=_touch(issue, _now(now)))
    logger.info('Issue %s: %s -> %s by %s', issue.id, issue.status, new_status, actor.id)
    return updated


# -------------------------------
# Resolution Workflow
# -------------------------------
def resolve(issue: Issue, actor: Actor, resolution_photo, resolution_notes, now=None) -> Issue:
    """Close an in-progress issue with photographic and written evidence.

    All resolution fields and the status are set in one new value.
    """
    _require_admin(actor, 'resolve issues')

    if issue.status != STATUS_IN_PROGRESS:
        message = f'Only in-progress issues can be resolved (status is {issue.status}).'
        logger.warning('Issue %s: %s', issue.id, message)
        raise InvalidTransition(message, field='status')

    if not isinstance(resolution_photo, str) or not resolution_photo.strip():
        raise ValidationError('A resolution photo is required.', field='resolution_photo')
    if not isinstance(resolution_notes, str) or not resolution_notes.strip():
        raise ValidationError('Resolution notes are required.', field='resolution_notes')

    timestamp = _touch(issue, _now(now))
    resolved = replace(
        issue,
        status=STATUS_RESOLVED,
        resolution_photo=resolution_photo.strip(),
        resolution_notes=resolution_notes.strip(),
        resolved_at=timestamp,
        resolved_by=str(actor.id),
        updated_at=timestamp,
    )
    logger.info('Issue %s resolved by %s', issue.id, actor.id)
    return resolved


# -------------------------------
# Visibility Filter
# -------------------------------
def visible_issues(all_issues: Iterable[Issue], actor: Actor) -> List[Issue]:
    """Admins see every issue; citizens only the ones they reported."""
    if actor.is_admin:
        return list(all_issues)
    return [issue for issue in all_issues if issue.reported_by == str(actor.id)]


def filter_issues(issues: Iterable[Issue], search=None, status=None, category=None) -> List[Issue]:
    """Dashboard search/status/category filters, newest first.

    Expects an already visibility-filtered sequence.
    """
    if status in (None, '', ALL):
        status = None
    elif status not in STATUSES:
        raise ValidationError(f'Unknown status filter: {status!r}.', field='status')

    if category in (None, '', ALL):
        category = None
    elif category not in CATEGORIES:
        raise ValidationError(f'Unknown category filter: {category!r}.', field='category')

    term = (search or '').strip().lower()

    matches = [
        issue for issue in issues
        if (not term or term in issue.title.lower() or term in issue.description.lower())
        and (status is None or issue.status == status)
        and (category is None or issue.category == category)
    ]
    return sorted(matches, key=lambda issue: issue.reported_at, reverse=True)


def issue_statistics(issues: Iterable[Issue]) -> dict:
    issues = list(issues)
    by_status = {value: 0 for value in STATUSES}
    by_category = {value: 0 for value in CATEGORIES}
    by_priority = {value: 0 for value in PRIORITIES}
    for issue in issues:
        by_status[issue.status] = by_status.get(issue.status, 0) + 1
        by_category[issue.category] = by_category.get(issue.category, 0) + 1
        by_priority[issue.priority] = by_priority.get(issue.priority, 0) + 1

    return {
        'total': len(issues),
        'pending': by_status[STATUS_PENDING],
        'in_progress': by_status[STATUS_IN_PROGRESS],
        'resolved': by_status[STATUS_RESOLVED],
        'rejected': by_status[STATUS_REJECTED],
        'by_category': by_category,
        'by_priority': by_priority,
    }
