"""Session login/logout for API clients."""

from django.contrib.auth import authenticate, login, logout
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from radiopharm.core.exceptions import Unauthorized

from .decorators import api_login_required
from .parsing import parse_json_body, require_fields
from .serializers import uid


def _me(user):
    return {
        "id": user.pk,
        "username": user.username,
        "email": user.email,
        "roles": sorted(user.role_names()),
        "customerId": uid(user.customer_id),
    }


@csrf_exempt
@require_POST
def api_login(request):
    data = parse_json_body(request)
    require_fields(data, "username", "password")
    user = authenticate(request, username=data["username"], password=data["password"])
    if user is None:
        raise Unauthorized("Invalid credentials")
    login(request, user)
    return JsonResponse(_me(user))


@csrf_exempt
@require_POST
def api_logout(request):
    logout(request)
    return JsonResponse({"ok": True})


@require_GET
@api_login_required
def api_me(request):
    return JsonResponse(_me(request.user))
