"""Human-readable document numbers (ORD-2026-000042 and friends)."""
from django.db import transaction
from django.db.models import F

from .models import Sequence


def next_sequence(scope: str, prefix: str = "") -> str:
    """
    Claim the next number in `scope`.

    The counter row is locked for the rest of the transaction, so two
    callers can never be handed the same number.
    """
    with transaction.atomic():
        Sequence.objects.get_or_create(scope=scope, defaults={"prefix": prefix})
        Sequence.objects.filter(scope=scope).update(last_value=F("last_value") + 1)
        return Sequence.objects.select_for_update().get(scope=scope).render()
