from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Guest or front-desk account. `is_staff` marks property administrators."""

    display_name = models.CharField(max_length=120, blank=True)
    phone = models.CharField(max_length=30, blank=True)

    @property
    def full_name(self) -> str:
        return self.display_name or f"{self.first_name} {self.last_name}".strip() or self.email
