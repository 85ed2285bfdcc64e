"""
SpecFlow
Blueprint registry and shared view helpers.
"""

from flask import request

from specflow.utils.helpers import parse_int_arg


def paginate_query(query, default_limit=50, max_limit=500):
    """Apply ``?limit=&offset=`` to a SQLAlchemy query.

    ``limit`` is clamped to ``max_limit``; non-integer or negative values
    are rejected with ValidationError (422).

    Returns:
        (items, total) where ``total`` ignores the page window.
    """
    limit = parse_int_arg(request.args.get("limit"), "limit", default=default_limit, minimum=1)
    offset = parse_int_arg(request.args.get("offset"), "offset", default=0, minimum=0)
    total = query.count()
    items = query.limit(min(limit, max_limit)).offset(offset).all()
    return items, total
