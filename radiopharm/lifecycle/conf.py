"""
Transition validators configured through settings.

    LIFECYCLE_VALIDATORS = {
        "*": ["radiopharm.approvals.validators.PendingApprovalValidator"],
        "INVOICE": ["radiopharm.billing.validators.InvoiceVoidValidator"],
    }

"*" entries apply to every entity type and run first.
"""
from functools import lru_cache
from importlib import import_module

from django.conf import settings

from .exceptions import ValidatorLoadError


@lru_cache(maxsize=None)
def load_validator(path: str):
    from .validators import BaseTransitionValidator

    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ValidatorLoadError(path, "expected 'package.module.ClassName'")
    try:
        target = getattr(import_module(module_name), attr)
    except ImportError as exc:
        raise ValidatorLoadError(path, f"import failed: {exc}") from exc
    except AttributeError as exc:
        raise ValidatorLoadError(path, f"no attribute '{attr}'") from exc

    if not (isinstance(target, type) and issubclass(target, BaseTransitionValidator)):
        raise ValidatorLoadError(path, "not a BaseTransitionValidator subclass")
    return target()


def get_validators_for(entity_type: str) -> list:
    registry = getattr(settings, "LIFECYCLE_VALIDATORS", None) or {}
    paths = [*registry.get("*", ()), *registry.get(entity_type, ())]
    return [load_validator(path) for path in paths]
