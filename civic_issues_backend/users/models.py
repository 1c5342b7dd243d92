from django.db import models
from django.contrib.auth.models import AbstractUser
from issues.lifecycle import ROLE_ADMIN, ROLE_CHOICES, ROLE_CITIZEN


class User(AbstractUser):
    ROLE_CHOICES = ROLE_CHOICES

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CITIZEN)
    phone_number = models.CharField(max_length=15, null=True, blank=True)

    @property
    def is_admin_role(self):
        # Django staff act as admins too
        return self.role == ROLE_ADMIN or self.is_staff

    def __str__(self):
        return self.username
