from datetime import datetime, timezone
from functools import wraps

from flask import request, jsonify, abort
from flask_login import login_required, current_user
from werkzeug.datastructures import MultiDict

from hubsystem.errors import ValidationError


# --- Auth Helpers ---
def role_required(*roles):
    def decorator(f):
        @wraps(f)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.role not in roles:
                return abort(403)
            return f(*args, **kwargs)
        return wrapped
    return decorator


def json_body():
    """Request JSON as a dict; empty dict when the body is missing or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def get_pagination(default_limit=10, max_limit=100):
    page = max(request.args.get('page', 1, type=int) or 1, 1)
    limit = request.args.get('limit', default_limit, type=int) or default_limit
    return page, min(max(limit, 1), max_limit)


def paginated(items_key, pagination, serializer):
    return {
        items_key: [serializer(item) for item in pagination.items],
        "pagination": {
            "page": pagination.page,
            "limit": pagination.per_page,
            "total": pagination.total,
            "totalPages": pagination.pages,
        },
    }


def validation_error(form):
    return jsonify({"success": False, "error": "Validation error", "details": form.errors}), 400


def parse_bool_arg(name):
    value = request.args.get(name)
    if value is None:
        return None
    return value.lower() in ('1', 'true', 'yes')


def patch_form(form_class, obj, fields):
    """
    Bind `form_class` for a partial update: stored values of `obj` overlaid
    with the request body, so required fields validate even when not sent.
    Returns (form, names of the fields the client actually sent).
    """
    body = json_body()
    merged = {field: getattr(obj, field) for field in fields}
    merged.update({k: v for k, v in body.items() if k in fields})

    formdata = MultiDict()
    for key, value in merged.items():
        if value is None:
            continue
        if isinstance(value, datetime):
            value = value.strftime('%Y-%m-%dT%H:%M:%S')
        formdata[key] = value
    return form_class(formdata=formdata), [field for field in fields if field in body]


def parse_date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f"Invalid date for '{name}'")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
