"""JSON API blueprints."""
from flask import request

from orderdesk.exceptions import ValidationError


def json_body(expected=dict):
    """Parsed JSON request body; anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        data = expected()
    if not isinstance(data, expected):
        raise ValidationError(f'Request body must be a JSON {"object" if expected is dict else "array"}')
    return data
