"""Authentication events recorded in the audit trail."""

from django.contrib.auth.signals import user_logged_in, user_logged_out
from django.dispatch import receiver

from .api import log_event


@receiver(user_logged_in)
def audit_login(sender, request, user, **kwargs):
    log_event("LOGIN", actor=user, request=request)


@receiver(user_logged_out)
def audit_logout(sender, request, user, **kwargs):
    if user is not None:
        log_event("LOGOUT", actor=user, request=request)
