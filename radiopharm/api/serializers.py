"""Small value formatters shared by the per-app serializers."""


def iso(value):
    return value.isoformat() if value else None


def dec(value):
    return str(value) if value is not None else None


def uid(value):
    return str(value) if value else None


def user_ref(user):
    if user is None:
        return None
    return {"id": user.pk, "username": user.username, "name": user.get_full_name() or user.username}


def paginate(queryset, request, default_limit: int = 50, max_limit: int = 200):
    """Slice a queryset by ?limit=&offset=. Returns (items, meta)."""
    try:
        limit = int(request.GET.get("limit", default_limit))
    except ValueError:
        limit = default_limit
    try:
        offset = int(request.GET.get("offset", 0))
    except ValueError:
        offset = 0
    limit = max(1, min(limit, max_limit))
    offset = max(0, offset)
    total = queryset.count()
    items = list(queryset[offset:offset + limit])
    return items, {"total": total, "limit": limit, "offset": offset}
