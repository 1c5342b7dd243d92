from unittest import mock

from django.contrib.auth import get_user_model
from django.core import mail
from django.db import utils as db_utils
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient, APITestCase

from zones.models import Zone
from .lifecycle import Actor, IssueDraft, create_issue
from .models import Issue
from .repository import DjangoIssueRepository
from .exceptions import NotFound

User = get_user_model()

ISSUES_URL = '/api/issues/'


def issue_payload(**overrides):
    payload = {
        'title': 'Pothole',
        'description': 'Deep pothole near the market',
        'category': 'pothole',
        'priority': 'high',
        'photos': ['p1.jpg'],
        'location': {'lat': 1, 'lng': 2, 'address': 'Market St'},
    }
    payload.update(overrides)
    return payload


class IssueAPITest(APITestCase):
    def setUp(self):
        self.citizen = User.objects.create_user(username='citizen', password='pass', email='citizen@example.com')
        self.other = User.objects.create_user(username='other', password='pass', email='other@example.com')
        self.admin = User.objects.create_user(username='admin', password='pass', role='admin')
        self.client = APIClient()

    def report(self, user=None, **overrides):
        self.client.force_authenticate(user=user or self.citizen)
        resp = self.client.post(ISSUES_URL, issue_payload(**overrides), format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        return resp.json()

    def test_requires_authentication(self):
        resp = self.client.get(ISSUES_URL)
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_issue(self):
        data = self.report()
        self.assertEqual(data['status'], 'pending')
        self.assertEqual(data['reported_by'], str(self.citizen.pk))
        self.assertEqual(data['location'], {'lat': 1.0, 'lng': 2.0, 'address': 'Market St'})
        self.assertIsNone(data['resolved_at'])

        record = Issue.objects.get(pk=data['id'])
        self.assertEqual(record.reported_by, self.citizen)
        self.assertEqual(record.photos, ['p1.jpg'])

    def test_reporter_comes_from_session_not_payload(self):
        data = self.report(reported_by=str(self.other.pk), status='resolved')
        self.assertEqual(data['reported_by'], str(self.citizen.pk))
        self.assertEqual(data['status'], 'pending')

    def test_create_without_photos_is_validation_error(self):
        self.client.force_authenticate(user=self.citizen)
        resp = self.client.post(ISSUES_URL, issue_payload(photos=[]), format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()['kind'], 'validation_error')
        self.assertIn('photos', resp.json()['errors'])
        self.assertFalse(Issue.objects.exists())

    def test_create_without_location_is_validation_error(self):
        self.client.force_authenticate(user=self.citizen)
        payload = issue_payload()
        del payload['location']
        resp = self.client.post(ISSUES_URL, payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('location', resp.json()['errors'])

    def test_create_with_non_text_address_is_validation_error(self):
        self.client.force_authenticate(user=self.citizen)
        resp = self.client.post(ISSUES_URL, issue_payload(location={'lat': 1, 'lng': 2, 'address': 123}), format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()['kind'], 'validation_error')
        self.assertIn('location', resp.json()['errors'])
        self.assertFalse(Issue.objects.exists())

    def test_create_with_overlong_title_is_validation_error(self):
        self.client.force_authenticate(user=self.citizen)
        resp = self.client.post(ISSUES_URL, issue_payload(title='x' * 500), format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()['kind'], 'validation_error')
        self.assertIn('title', resp.json()['errors'])
        self.assertFalse(Issue.objects.exists())

    def test_create_with_zone(self):
        zone = Zone.objects.create(name='Downtown', coordinates=[[0, 0], [0, 3], [3, 3]])
        data = self.report(zone=zone.pk)
        self.assertEqual(data['zone'], str(zone.pk))

    def test_create_with_unknown_zone(self):
        self.client.force_authenticate(user=self.citizen)
        resp = self.client.post(ISSUES_URL, issue_payload(zone=999), format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('zone', resp.json()['errors'])

    def test_citizen_lists_only_own_issues(self):
        mine = self.report()
        self.report(user=self.other, title='Street light out', category='street-light')

        self.client.force_authenticate(user=self.citizen)
        resp = self.client.get(ISSUES_URL)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([item['id'] for item in resp.json()], [mine['id']])

    def test_admin_lists_everything(self):
        self.report()
        self.report(user=self.other, title='Street light out', category='street-light')

        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(ISSUES_URL)
        self.assertEqual(len(resp.json()), 2)

    def test_list_filters(self):
        self.report(title='Overflowing bin', category='garbage')
        self.report(title='Pothole by school')

        self.client.force_authenticate(user=self.citizen)
        resp = self.client.get(ISSUES_URL, {'search': 'bin'})
        self.assertEqual([item['title'] for item in resp.json()], ['Overflowing bin'])
        resp = self.client.get(ISSUES_URL, {'category': 'pothole', 'status': 'all'})
        self.assertEqual([item['title'] for item in resp.json()], ['Pothole by school'])
        resp = self.client.get(ISSUES_URL, {'status': 'done'})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve_someone_elses_issue_is_not_found(self):
        theirs = self.report(user=self.other)
        self.client.force_authenticate(user=self.citizen)
        resp = self.client.get(f'{ISSUES_URL}{theirs["id"]}/')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.json()['kind'], 'not_found')

        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(f'{ISSUES_URL}{theirs["id"]}/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_retrieve_missing_issue(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(f'{ISSUES_URL}does-not-exist/')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_full_lifecycle_over_http(self):
        issue = self.report()
        status_url = f'{ISSUES_URL}{issue["id"]}/status/'
        resolve_url = f'{ISSUES_URL}{issue["id"]}/resolve/'

        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(resolve_url, {'resolution_photo': 'r.jpg', 'resolution_notes': 'Fixed'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()['kind'], 'invalid_transition')

        resp = self.client.patch(status_url, {'status': 'in-progress'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json()['status'], 'in-progress')

        resp = self.client.post(resolve_url, {'resolution_photo': 'r.jpg', 'resolution_notes': '   '}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()['kind'], 'validation_error')

        resp = self.client.post(
            resolve_url,
            {'resolution_photo': 'r.jpg', 'resolution_notes': '  Fixed pothole  '},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.json()
        self.assertEqual(data['status'], 'resolved')
        self.assertEqual(data['resolution_notes'], 'Fixed pothole')
        self.assertEqual(data['resolved_by'], str(self.admin.pk))
        self.assertIsNotNone(data['resolved_at'])

        record = Issue.objects.get(pk=issue['id'])
        self.assertEqual(record.status, 'resolved')
        self.assertEqual(record.resolved_by, self.admin)

        resp = self.client.patch(status_url, {'status': 'pending'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()['kind'], 'invalid_transition')

    def test_status_cannot_be_set_to_resolved(self):
        issue = self.report()
        self.client.force_authenticate(user=self.admin)
        resp = self.client.patch(f'{ISSUES_URL}{issue["id"]}/status/', {'status': 'resolved'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()['kind'], 'invalid_transition')
        self.assertEqual(Issue.objects.get(pk=issue['id']).status, 'pending')

    def test_citizen_cannot_change_status_or_resolve(self):
        issue = self.report()
        before = Issue.objects.get(pk=issue['id']).to_domain()

        self.client.force_authenticate(user=self.citizen)
        resp = self.client.patch(f'{ISSUES_URL}{issue["id"]}/status/', {'status': 'in-progress'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.json()['kind'], 'unauthorized')

        resp = self.client.post(
            f'{ISSUES_URL}{issue["id"]}/resolve/',
            {'resolution_photo': 'r.jpg', 'resolution_notes': 'Fixed'},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Issue.objects.get(pk=issue['id']).to_domain(), before)

    def test_staff_user_acts_as_admin(self):
        staff = User.objects.create_user(username='staff', password='pass', is_staff=True)
        issue = self.report()
        self.client.force_authenticate(user=staff)
        resp = self.client.post(f'{ISSUES_URL}{issue["id"]}/status/', {'status': 'rejected'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json()['status'], 'rejected')

    def test_status_change_on_missing_issue(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.patch(f'{ISSUES_URL}missing/status/', {'status': 'in-progress'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_reporter_is_emailed_on_status_change(self):
        issue = self.report()
        self.client.force_authenticate(user=self.admin)
        self.client.patch(f'{ISSUES_URL}{issue["id"]}/status/', {'status': 'in-progress'}, format='json')
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['citizen@example.com'])
        self.assertIn('in progress', mail.outbox[0].body)

    @override_settings(ISSUE_STATUS_EMAILS=False)
    def test_status_emails_can_be_disabled(self):
        issue = self.report()
        self.client.force_authenticate(user=self.admin)
        self.client.patch(f'{ISSUES_URL}{issue["id"]}/status/', {'status': 'in-progress'}, format='json')
        self.assertEqual(len(mail.outbox), 0)

    def test_stats_follow_visibility(self):
        issue = self.report()
        self.report(user=self.other)
        self.client.force_authenticate(user=self.admin)
        self.client.patch(f'{ISSUES_URL}{issue["id"]}/status/', {'status': 'in-progress'}, format='json')

        self.client.force_authenticate(user=self.citizen)
        stats = self.client.get(f'{ISSUES_URL}stats/').json()
        self.assertEqual(stats['total'], 1)
        self.assertEqual(stats['in_progress'], 1)
        self.assertEqual(stats['pending'], 0)

        self.client.force_authenticate(user=self.admin)
        stats = self.client.get(f'{ISSUES_URL}stats/').json()
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['pending'], 1)

    def test_markers_follow_visibility(self):
        self.report()
        self.report(user=self.other, location={'lat': 5, 'lng': 6})

        self.client.force_authenticate(user=self.citizen)
        data = self.client.get(f'{ISSUES_URL}markers/').json()
        self.assertEqual(data['type'], 'FeatureCollection')
        self.assertEqual(len(data['features']), 1)
        self.assertEqual(data['bbox'], [2.0, 1.0, 2.0, 1.0])

    def test_database_failure_is_server_error(self):
        self.client.force_authenticate(user=self.admin)
        with mock.patch.object(DjangoIssueRepository, 'list', side_effect=db_utils.OperationalError('down')):
            resp = self.client.get(ISSUES_URL)
        self.assertEqual(resp.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(resp.json()['kind'], 'persistence_error')

    def test_token_authentication(self):
        token, _ = Token.objects.get_or_create(user=self.citizen)
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION='Token ' + token.key)
        resp = client.get(ISSUES_URL)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)


class DjangoIssueRepositoryTests(TestCase):
    def setUp(self):
        self.citizen = User.objects.create_user(username='citizen', password='pass')
        self.actor = Actor(id=str(self.citizen.pk), role='citizen')
        self.repository = DjangoIssueRepository()

    def test_round_trips_through_the_database(self):
        issue = create_issue(
            IssueDraft(
                title='Water leak',
                description='Burst pipe',
                photos=('a.jpg', 'b.jpg'),
                location={'lat': -1.3, 'lng': 36.8},
                category='water-leak',
            ),
            self.actor,
        )
        self.repository.save(issue)
        self.assertEqual(self.repository.load(issue.id), issue)
        self.assertEqual(self.repository.list(), [issue])

    def test_load_missing(self):
        with self.assertRaises(NotFound):
            self.repository.load('missing')
