from dataclasses import replace
from datetime import datetime, timedelta, timezone

from django.test import SimpleTestCase

from .exceptions import InvalidTransition, NotFound, Unauthorized, ValidationError
from .lifecycle import (
    ADDRESS_MAX_LENGTH,
    Actor,
    IssueDraft,
    Location,
    TITLE_MAX_LENGTH,
    apply_transition,
    create_issue,
    filter_issues,
    issue_statistics,
    resolve,
    visible_issues,
)
from .markers import issue_markers
from .repository import InMemoryIssueRepository

CITIZEN = Actor(id='1', role='citizen')
OTHER_CITIZEN = Actor(id='3', role='citizen')
ADMIN = Actor(id='2', role='admin')

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def make_draft(**overrides):
    fields = {
        'title': 'Pothole',
        'description': 'Deep pothole on Main St',
        'photos': ('p1.jpg',),
        'location': {'lat': 1, 'lng': 2},
        'category': 'pothole',
        'priority': 'high',
    }
    fields.update(overrides)
    return IssueDraft(**fields)


def assert_resolution_consistent(testcase, issue):
    testcase.assertEqual(issue.status == 'resolved', issue.has_resolution)


class CreateIssueTests(SimpleTestCase):
    def test_creates_pending_issue_owned_by_actor(self):
        issue = create_issue(make_draft(), CITIZEN, now=T0)
        self.assertEqual(issue.status, 'pending')
        self.assertEqual(issue.reported_by, '1')
        self.assertEqual(issue.reported_at, T0)
        self.assertEqual(issue.updated_at, T0)
        self.assertEqual(issue.photos, ('p1.jpg',))
        self.assertEqual(issue.location, Location(lat=1.0, lng=2.0))
        self.assertIsNone(issue.resolved_at)
        assert_resolution_consistent(self, issue)

    def test_ids_are_unique(self):
        first = create_issue(make_draft(), CITIZEN)
        second = create_issue(make_draft(), CITIZEN)
        self.assertNotEqual(first.id, second.id)

    def test_admin_can_report_too(self):
        issue = create_issue(make_draft(), ADMIN)
        self.assertEqual(issue.reported_by, '2')

    def test_title_and_description_are_trimmed(self):
        issue = create_issue(make_draft(title='  Pothole  ', description=' deep '), CITIZEN)
        self.assertEqual(issue.title, 'Pothole')
        self.assertEqual(issue.description, 'deep')

    def test_address_is_kept(self):
        issue = create_issue(make_draft(location={'lat': -1.29, 'lng': 36.82, 'address': 'Moi Ave'}), CITIZEN)
        self.assertEqual(issue.location.address, 'Moi Ave')

    def test_empty_photos_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_issue(make_draft(photos=()), CITIZEN)
        self.assertEqual(ctx.exception.field, 'photos')

    def test_blank_photo_reference_rejected(self):
        with self.assertRaises(ValidationError):
            create_issue(make_draft(photos=('p1.jpg', '  ')), CITIZEN)

    def test_blank_title_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_issue(make_draft(title='   '), CITIZEN)
        self.assertEqual(ctx.exception.field, 'title')

    def test_missing_description_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_issue(make_draft(description=None), CITIZEN)
        self.assertEqual(ctx.exception.field, 'description')

    def test_missing_location_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_issue(make_draft(location=None), CITIZEN)
        self.assertEqual(ctx.exception.field, 'location')

    def test_location_needs_both_coordinates(self):
        with self.assertRaises(ValidationError):
            create_issue(make_draft(location={'lat': 1}), CITIZEN)

    def test_location_out_of_range_rejected(self):
        with self.assertRaises(ValidationError):
            create_issue(make_draft(location={'lat': 91, 'lng': 0}), CITIZEN)

    def test_non_numeric_location_rejected(self):
        with self.assertRaises(ValidationError):
            create_issue(make_draft(location={'lat': 'north', 'lng': 0}), CITIZEN)

    def test_unknown_category_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_issue(make_draft(category='graffiti'), CITIZEN)
        self.assertEqual(ctx.exception.field, 'category')

    def test_unknown_priority_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_issue(make_draft(priority='critical'), CITIZEN)
        self.assertEqual(ctx.exception.field, 'priority')

    def test_photos_must_be_a_list(self):
        for photos in (5, {'p1.jpg': True}, object()):
            with self.assertRaises(ValidationError) as ctx:
                create_issue(make_draft(photos=photos), CITIZEN)
            self.assertEqual(ctx.exception.field, 'photos')

    def test_non_text_address_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_issue(make_draft(location={'lat': 1, 'lng': 2, 'address': 123}), CITIZEN)
        self.assertEqual(ctx.exception.field, 'location')

    def test_title_longer_than_column_rejected(self):
        create_issue(make_draft(title='x' * TITLE_MAX_LENGTH), CITIZEN)
        with self.assertRaises(ValidationError) as ctx:
            create_issue(make_draft(title='x' * (TITLE_MAX_LENGTH + 1)), CITIZEN)
        self.assertEqual(ctx.exception.field, 'title')

    def test_address_longer_than_column_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_issue(
                make_draft(location={'lat': 1, 'lng': 2, 'address': 'a' * (ADDRESS_MAX_LENGTH + 1)}),
                CITIZEN,
            )
        self.assertEqual(ctx.exception.field, 'location')


class ApplyTransitionTests(SimpleTestCase):
    def setUp(self):
        self.issue = create_issue(make_draft(), CITIZEN, now=T0)

    def test_admin_moves_to_in_progress(self):
        later = T0 + timedelta(hours=1)
        updated = apply_transition(self.issue, ADMIN, 'in-progress', now=later)
        self.assertEqual(updated.status, 'in-progress')
        self.assertEqual(updated.updated_at, later)
        # nothing else changes
        self.assertEqual(replace(updated, status='pending', updated_at=T0), self.issue)
        self.assertEqual(self.issue.status, 'pending')

    def test_admin_can_reject_and_reopen(self):
        rejected = apply_transition(self.issue, ADMIN, 'rejected')
        reopened = apply_transition(rejected, ADMIN, 'pending')
        self.assertEqual(reopened.status, 'pending')

    def test_citizen_is_unauthorized_and_issue_unchanged(self):
        before = replace(self.issue)
        for target in ('pending', 'in-progress', 'rejected', 'resolved'):
            with self.assertRaises(Unauthorized):
                apply_transition(self.issue, CITIZEN, target)
        self.assertEqual(self.issue, before)

    def test_resolved_is_never_a_transition_target(self):
        with self.assertRaises(InvalidTransition):
            apply_transition(self.issue, ADMIN, 'resolved')
        in_progress = apply_transition(self.issue, ADMIN, 'in-progress')
        with self.assertRaises(InvalidTransition):
            apply_transition(in_progress, ADMIN, 'resolved')

    def test_citizen_transition_to_resolved_is_unauthorized(self):
        with self.assertRaises(Unauthorized):
            apply_transition(self.issue, CITIZEN, 'resolved')

    def test_unknown_status_rejected(self):
        with self.assertRaises(InvalidTransition):
            apply_transition(self.issue, ADMIN, 'closed')

    def test_resolved_issue_is_terminal(self):
        in_progress = apply_transition(self.issue, ADMIN, 'in-progress')
        resolved = resolve(in_progress, ADMIN, 'r.jpg', 'Filled')
        for target in ('pending', 'in-progress', 'rejected'):
            with self.assertRaises(InvalidTransition):
                apply_transition(resolved, ADMIN, target)

    def test_updated_at_never_before_reported_at(self):
        earlier = T0 - timedelta(days=1)
        updated = apply_transition(self.issue, ADMIN, 'in-progress', now=earlier)
        self.assertGreaterEqual(updated.updated_at, updated.reported_at)

    def test_naive_timestamps_are_treated_as_utc(self):
        naive = datetime(2024, 5, 2, 9, 30)
        updated = apply_transition(self.issue, ADMIN, 'in-progress', now=naive)
        self.assertEqual(updated.updated_at, naive.replace(tzinfo=timezone.utc))

        resolved = resolve(updated, ADMIN, 'r.jpg', 'Fixed', now=datetime(2024, 5, 3, 10, 0))
        self.assertEqual(resolved.resolved_at, datetime(2024, 5, 3, 10, 0, tzinfo=timezone.utc))
        self.assertIsNotNone(create_issue(make_draft(), CITIZEN, now=naive).reported_at.tzinfo)


class ResolveTests(SimpleTestCase):
    def setUp(self):
        self.issue = create_issue(make_draft(), CITIZEN, now=T0)
        self.in_progress = apply_transition(self.issue, ADMIN, 'in-progress', now=T0)

    def test_resolve_sets_all_fields_together(self):
        later = T0 + timedelta(days=2)
        resolved = resolve(self.in_progress, ADMIN, 'r.jpg', '  Fixed pothole  ', now=later)
        self.assertEqual(resolved.status, 'resolved')
        self.assertEqual(resolved.resolution_photo, 'r.jpg')
        self.assertEqual(resolved.resolution_notes, 'Fixed pothole')
        self.assertEqual(resolved.resolved_at, later)
        self.assertEqual(resolved.updated_at, later)
        self.assertEqual(resolved.resolved_by, '2')
        assert_resolution_consistent(self, resolved)
        assert_resolution_consistent(self, self.in_progress)

    def test_pending_issue_cannot_be_resolved(self):
        with self.assertRaises(InvalidTransition):
            resolve(self.issue, ADMIN, 'r.jpg', 'Fixed')

    def test_rejected_issue_cannot_be_resolved(self):
        rejected = apply_transition(self.issue, ADMIN, 'rejected')
        with self.assertRaises(InvalidTransition):
            resolve(rejected, ADMIN, 'r.jpg', 'Fixed')

    def test_empty_notes_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            resolve(self.in_progress, ADMIN, 'r.jpg', '   ')
        self.assertEqual(ctx.exception.field, 'resolution_notes')
        self.assertEqual(self.in_progress.status, 'in-progress')
        assert_resolution_consistent(self, self.in_progress)

    def test_empty_photo_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            resolve(self.in_progress, ADMIN, '', 'Fixed')
        self.assertEqual(ctx.exception.field, 'resolution_photo')

    def test_citizen_cannot_resolve(self):
        before = replace(self.in_progress)
        with self.assertRaises(Unauthorized):
            resolve(self.in_progress, CITIZEN, 'r.jpg', 'Fixed')
        self.assertEqual(self.in_progress, before)

    def test_already_resolved_cannot_be_resolved_again(self):
        resolved = resolve(self.in_progress, ADMIN, 'r.jpg', 'Fixed')
        with self.assertRaises(InvalidTransition):
            resolve(resolved, ADMIN, 'r2.jpg', 'Fixed again')


class ReportedScenarioTests(SimpleTestCase):
    def test_full_lifecycle(self):
        with self.assertRaises(ValidationError):
            create_issue(make_draft(photos=[]), CITIZEN)

        issue = create_issue(make_draft(photos=['p1.jpg'], title='Pothole'), CITIZEN)
        self.assertEqual(issue.status, 'pending')

        issue = apply_transition(issue, ADMIN, 'in-progress')
        self.assertEqual(issue.status, 'in-progress')

        issue = resolve(issue, ADMIN, 'r.jpg', '  Fixed pothole  ')
        self.assertEqual(issue.resolution_notes, 'Fixed pothole')
        self.assertEqual(issue.status, 'resolved')

        with self.assertRaises(InvalidTransition):
            apply_transition(issue, ADMIN, 'pending')


class VisibilityTests(SimpleTestCase):
    def setUp(self):
        self.mine = create_issue(make_draft(title='Leaking pipe', category='water-leak'), CITIZEN, now=T0)
        self.theirs = create_issue(
            make_draft(title='Broken lamp', category='street-light'),
            OTHER_CITIZEN,
            now=T0 + timedelta(hours=1),
        )
        self.issues = [self.mine, self.theirs]

    def test_citizen_sees_only_own_issues(self):
        visible = visible_issues(self.issues, CITIZEN)
        self.assertEqual(visible, [self.mine])
        self.assertTrue(all(issue.reported_by == CITIZEN.id for issue in visible))

    def test_admin_sees_everything(self):
        self.assertEqual(visible_issues(self.issues, ADMIN), self.issues)

    def test_filters_search_title_and_description_case_insensitively(self):
        self.assertEqual(filter_issues(self.issues, search='LAMP'), [self.theirs])
        self.assertEqual(filter_issues(self.issues, search='main st'), [self.theirs, self.mine])

    def test_filters_by_status_and_category(self):
        in_progress = apply_transition(self.mine, ADMIN, 'in-progress')
        issues = [in_progress, self.theirs]
        self.assertEqual(filter_issues(issues, status='in-progress'), [in_progress])
        self.assertEqual(filter_issues(issues, category='street-light'), [self.theirs])
        self.assertEqual(filter_issues(issues, status='all', category='all'), [self.theirs, in_progress])

    def test_unknown_filter_values_rejected(self):
        with self.assertRaises(ValidationError):
            filter_issues(self.issues, status='done')
        with self.assertRaises(ValidationError):
            filter_issues(self.issues, category='graffiti')

    def test_statistics_over_visible_set(self):
        stats = issue_statistics(visible_issues(self.issues, CITIZEN))
        self.assertEqual(stats['total'], 1)
        self.assertEqual(stats['pending'], 1)
        self.assertEqual(stats['in_progress'], 0)
        self.assertEqual(stats['by_category']['water-leak'], 1)
        self.assertEqual(stats['by_category']['street-light'], 0)

        admin_stats = issue_statistics(visible_issues(self.issues, ADMIN))
        self.assertEqual(admin_stats['total'], 2)
        self.assertEqual(admin_stats['by_priority']['high'], 2)

    def test_markers_cover_issue_locations(self):
        far = create_issue(make_draft(location={'lat': -4, 'lng': 39}), CITIZEN)
        collection = issue_markers([self.mine, far])
        self.assertEqual(collection['type'], 'FeatureCollection')
        self.assertEqual(collection['bbox'], [2.0, -4.0, 39.0, 1.0])
        self.assertEqual(collection['features'][0]['geometry']['coordinates'], [2.0, 1.0])
        self.assertEqual(collection['features'][0]['properties']['status'], 'pending')

    def test_markers_without_issues(self):
        self.assertIsNone(issue_markers([])['bbox'])


class InMemoryRepositoryTests(SimpleTestCase):
    def test_save_load_and_list(self):
        issue = create_issue(make_draft(), CITIZEN)
        repository = InMemoryIssueRepository()
        repository.save(issue)
        self.assertEqual(repository.load(issue.id), issue)

        updated = apply_transition(issue, ADMIN, 'rejected')
        repository.save(updated)
        self.assertEqual(repository.list(), [updated])

    def test_missing_issue_raises_not_found(self):
        with self.assertRaises(NotFound):
            InMemoryIssueRepository().load('missing')
