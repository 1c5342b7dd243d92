from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework.authtoken.models import Token
from issues.permissions import actor_for_user
from issues import lifecycle
from .models import User


class UserAPITests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.admin = User.objects.create_user(username='admin', password='adminpass', role='admin')

	def test_register_creates_citizen_with_token(self):
		resp = self.client.post('/api/users/register/', {'username': 'wanjiru', 'password': 'longenough1'}, format='json')
		self.assertEqual(resp.status_code, 201)
		data = resp.json()
		self.assertEqual(data['user']['role'], 'citizen')
		self.assertTrue(Token.objects.filter(key=data['token']).exists())

	def test_register_cannot_claim_admin_role(self):
		resp = self.client.post(
			'/api/users/register/',
			{'username': 'sneaky', 'password': 'longenough1', 'role': 'admin'},
			format='json',
		)
		self.assertEqual(resp.status_code, 400)
		self.assertIn('role', resp.json()['errors'])
		self.assertFalse(User.objects.filter(username='sneaky').exists())

	def test_login_and_me(self):
		resp = self.client.post('/api/users/login/', {'username': 'admin', 'password': 'adminpass'}, format='json')
		self.assertEqual(resp.status_code, 200)
		token = resp.json()['token']

		self.client.credentials(HTTP_AUTHORIZATION='Token ' + token)
		resp = self.client.get('/api/users/me/')
		self.assertEqual(resp.status_code, 200)
		self.assertEqual(resp.json()['username'], 'admin')
		self.assertTrue(resp.json()['is_admin'])

	def test_login_with_bad_password(self):
		resp = self.client.post('/api/users/login/', {'username': 'admin', 'password': 'wrong'}, format='json')
		self.assertEqual(resp.status_code, 401)

	def test_login_missing_fields(self):
		resp = self.client.post('/api/users/login/', {}, format='json')
		self.assertEqual(resp.status_code, 400)

	def test_admin_creates_admin(self):
		self.client.force_authenticate(user=self.admin)
		resp = self.client.post(
			'/api/users/admin/users/',
			{'username': 'clerk', 'password': 'longenough1', 'role': 'admin'},
			format='json',
		)
		self.assertEqual(resp.status_code, 201)
		self.assertEqual(User.objects.get(username='clerk').role, 'admin')

	def test_citizen_cannot_use_admin_endpoint(self):
		citizen = User.objects.create_user(username='citizen', password='pass')
		self.client.force_authenticate(user=citizen)
		resp = self.client.post('/api/users/admin/users/', {'username': 'x', 'password': 'longenough1'}, format='json')
		self.assertEqual(resp.status_code, 403)

	def test_actor_roles(self):
		citizen = User.objects.create_user(username='citizen', password='pass')
		staff = User.objects.create_user(username='staff', password='pass', is_staff=True)
		self.assertEqual(actor_for_user(citizen).role, 'citizen')
		self.assertEqual(actor_for_user(self.admin).role, 'admin')
		self.assertEqual(actor_for_user(staff).role, 'admin')
		self.assertEqual(actor_for_user(citizen).id, str(citizen.pk))

	def test_role_choices_match_lifecycle_roles(self):
		self.assertIs(User.ROLE_CHOICES, lifecycle.ROLE_CHOICES)
		self.assertEqual(User._meta.get_field('role').default, lifecycle.ROLE_CITIZEN)
