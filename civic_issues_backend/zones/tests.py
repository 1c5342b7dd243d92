from django.test import TestCase
from rest_framework.test import APIClient
from users.models import User
from .models import Zone


class ZoneAPITests(TestCase):
	def setUp(self):
		self.admin = User.objects.create_user(username='admin', password='pass', role='admin')
		self.citizen = User.objects.create_user(username='citizen', password='pass')
		self.client = APIClient()
		self.url = '/api/zones/'
		self.payload = {'name': 'Downtown', 'coordinates': [[-1.28, 36.81], [-1.29, 36.83], [-1.30, 36.82]]}

	def test_admin_creates_zone(self):
		self.client.force_authenticate(user=self.admin)
		resp = self.client.post(self.url, self.payload, format='json')
		self.assertEqual(resp.status_code, 201)
		zone = Zone.objects.get(name='Downtown')
		self.assertEqual(len(zone.coordinates), 3)

	def test_citizen_cannot_create_zone(self):
		self.client.force_authenticate(user=self.citizen)
		resp = self.client.post(self.url, self.payload, format='json')
		self.assertEqual(resp.status_code, 403)
		self.assertFalse(Zone.objects.exists())

	def test_invalid_coordinates_return_400(self):
		self.client.force_authenticate(user=self.admin)
		for coordinates in ([], [[1]], [['a', 'b']], [[100, 0]], 'nowhere'):
			resp = self.client.post(self.url, {'name': 'Bad', 'coordinates': coordinates}, format='json')
			self.assertEqual(resp.status_code, 400, coordinates)

	def test_duplicate_name_returns_400(self):
		Zone.objects.create(name='Downtown', coordinates=[[0, 0]])
		self.client.force_authenticate(user=self.admin)
		resp = self.client.post(self.url, {**self.payload, 'name': 'downtown'}, format='json')
		self.assertEqual(resp.status_code, 400)

	def test_any_authenticated_user_lists_and_filters(self):
		Zone.objects.create(name='Downtown', coordinates=[[0, 0]])
		Zone.objects.create(name='Westlands', coordinates=[[1, 1]])
		self.client.force_authenticate(user=self.citizen)
		resp = self.client.get(self.url)
		self.assertEqual(resp.status_code, 200)
		self.assertEqual([z['name'] for z in resp.json()], ['Downtown', 'Westlands'])
		resp = self.client.get(self.url, {'name': 'Westlands'})
		self.assertEqual([z['name'] for z in resp.json()], ['Westlands'])

	def test_anonymous_cannot_list(self):
		resp = self.client.get(self.url)
		self.assertEqual(resp.status_code, 401)
