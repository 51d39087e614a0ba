"""
Shared helpers for the JSON routes.

Error kinds map to HTTP statuses through ERROR_STATUS only.
"""

from datetime import datetime
from decimal import Decimal

from flask import jsonify

from splitbook.log import get_logger
from splitbook.services.errors import ErrorKind, InvalidInputError, LedgerError


logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_AMOUNT: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.SPLIT_MISMATCH: 400,
    ErrorKind.NOT_A_MEMBER: 400,
    ErrorKind.INVALID_SETTLEMENT: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.STORAGE_FAILURE: 500,
}


def success_response(message, data=None, status=200):
    return jsonify({'success': True, 'message': message, 'data': data}), status


def error_response(error):
    """Render a LedgerError. Storage failures stay opaque."""
    status = ERROR_STATUS.get(error.kind, 500)
    if error.kind is ErrorKind.STORAGE_FAILURE:
        body = {'error': error.kind.value, 'message': 'Internal server error'}
    else:
        body = error.to_dict()
    body['success'] = False
    return jsonify(body), status


def register_error_handlers(blueprint):
    @blueprint.errorhandler(LedgerError)
    def handle_ledger_error(error):
        if error.kind is ErrorKind.STORAGE_FAILURE:
            logger.error("request_failed", kind=error.kind.value)
        return error_response(error)


def money(value):
    return str(Decimal(value).quantize(Decimal('0.01'))) if value is not None else None


def json_body(request):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError("Invalid input format")
    return data


def parse_datetime(value, field):
    if value in (None, ''):
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} must be an ISO-8601 date")
