"""QuerySet for rows that are only in force between valid_from and valid_to."""
from django.db import models
from django.db.models import Q
from django.utils import timezone


class EffectiveDatedQuerySet(models.QuerySet):
    def current(self, at=None):
        """Live rows in force at `at` (default now). An open valid_to never lapses."""
        at = at or timezone.now()
        return self.filter(
            Q(valid_to__isnull=True) | Q(valid_to__gt=at),
            valid_from__lte=at,
            deleted_at__isnull=True,
        )
