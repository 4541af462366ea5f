"""
Record API Routes Blueprint

CRUD for every record kind, served from the configured repositories:
- /api/<kinds>: List (search, status filters) and create
- /api/<kinds>/<id>: Get, update and delete one record
- /api/<kinds>/<id>/status: Status change with its side effects
- /api/clients/<id>/<kinds>: Records belonging to a client
- /api/appointments/on/<day>: Appointments on a calendar day

Record errors (NotFound, ValidationFailed, RecordApiError) propagate to the
JSON error handlers registered in security.py.
"""

import logging
from typing import Any, Dict, Optional

from flask import Blueprint, abort, current_app, jsonify, request

from normalizers import (
    SIGNABLE_KINDS, SIGNING_ALIASES, normalize_record, normalize_records
)
from services.errors import ValidationFailed
from services.registry import RecordServices
from services.search import SEARCH_FIELDS, filter_records
from validators import (
    STATUS_CHOICES, format_success_response, sanitize_string,
    validate_form, validate_required_fields, validate_update
)

logger = logging.getLogger(__name__)

# Create blueprint
records_bp = Blueprint('records_bp', __name__)

# URL segment -> record kind
KIND_SEGMENTS = {
    'clients': 'client',
    'projects': 'project',
    'invoices': 'invoice',
    'proposals': 'proposal',
    'appointments': 'appointment',
}

# Kinds that reference a client
CLIENT_CHILD_SEGMENTS = ('projects', 'invoices', 'proposals', 'appointments')

# Written only by the signing service
SIGNING_FIELDS = frozenset(
    alias for aliases in SIGNING_ALIASES.values() for alias in aliases
) | {'signing_link', 'signingLink'}


def get_services() -> RecordServices:
    """Record services attached to the running app"""
    return current_app.extensions['record_services']


def resolve_kind(segment: str) -> str:
    kind = KIND_SEGMENTS.get(segment)
    if kind is None:
        abort(404)
    return kind


def read_json_body() -> Dict[str, Any]:
    """Request body as a dict with string values sanitized"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='Request body must be a JSON object')
    return {
        key: sanitize_string(value) if isinstance(value, str) else value
        for key, value in data.items()
    }


def present(kind: str, record: Dict) -> Optional[Dict]:
    """Canonical form of a stored record, plus the derived signing link"""
    canonical = normalize_record(kind, record)
    if canonical is None:
        return None
    if kind in SIGNABLE_KINDS and canonical.get('signing_token'):
        canonical['signing_link'] = get_services().signing(kind).build_link(canonical['signing_token'])
    return canonical


def present_list(kind: str, records) -> Dict[str, Any]:
    canonical, rejected = normalize_records(kind, records)
    if kind in SIGNABLE_KINDS:
        signing = get_services().signing(kind)
        for record in canonical:
            if record.get('signing_token'):
                record['signing_link'] = signing.build_link(record['signing_token'])
    return {'data': canonical, 'count': len(canonical), 'rejected': rejected}


def writable_fields(kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Request fields a create or update may write; signing fields are dropped"""
    ignored = sorted(key for key in data if key in SIGNING_FIELDS)
    if ignored:
        logger.warning(f"Ignoring signing fields on {kind} write: {', '.join(ignored)}")
    return {key: value for key, value in data.items() if key not in SIGNING_FIELDS}


def validated(kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
    errors = validate_form(kind, data)
    if errors:
        raise ValidationFailed(kind, errors)
    return data


# ============================================================================
# COLLECTIONS
# ============================================================================

@records_bp.route('/api/<segment>', methods=['GET', 'POST'])
def handle_records(segment):
    """List records of a kind, or create one"""
    kind = resolve_kind(segment)
    repository = get_services().repository(kind)

    if request.method == 'GET':
        result = present_list(kind, repository.get_all())
        result['data'] = filter_records(
            result['data'],
            search_term=request.args.get('search'),
            status=request.args.get('status'),
            fields=SEARCH_FIELDS[kind],
        )
        result['count'] = len(result['data'])
        return jsonify({'success': True, **result})

    data = validated(kind, writable_fields(kind, read_json_body()))
    record = repository.create(data)
    logger.info(f"API created {kind} {record.get('Id')}")
    return jsonify(format_success_response(present(kind, record), f"{kind.capitalize()} created")), 201


@records_bp.route('/api/<segment>/<int:record_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_record(segment, record_id):
    """Get, update or delete one record"""
    kind = resolve_kind(segment)
    repository = get_services().repository(kind)

    if request.method == 'GET':
        return jsonify(format_success_response(present(kind, repository.get_by_id(record_id))))

    if request.method == 'PUT':
        changes = writable_fields(kind, read_json_body())
        errors = validate_update(kind, repository.get_by_id(record_id), changes)
        if errors:
            raise ValidationFailed(kind, errors)
        record = repository.update(record_id, changes)
        return jsonify(format_success_response(present(kind, record), f"{kind.capitalize()} updated"))

    repository.delete(record_id)
    return jsonify(format_success_response({'Id': record_id}, f"{kind.capitalize()} deleted"))


@records_bp.route('/api/<segment>/<int:record_id>/status', methods=['PATCH'])
def update_record_status(segment, record_id):
    """Change only the status of a record"""
    kind = resolve_kind(segment)
    data = read_json_body()

    is_valid, error = validate_required_fields(data, ['status'])
    if not is_valid:
        raise ValidationFailed(kind, {'status': error})
    status = data['status']
    if status not in STATUS_CHOICES[kind]:
        raise ValidationFailed(kind, {
            'status': f"Status must be one of: {', '.join(STATUS_CHOICES[kind])}"
        })

    record = get_services().repository(kind).update_status(record_id, status)
    return jsonify(format_success_response(present(kind, record), f"{kind.capitalize()} status updated"))


# ============================================================================
# LOOKUPS
# ============================================================================

@records_bp.route('/api/clients/<int:client_id>/<segment>', methods=['GET'])
def get_client_records(client_id, segment):
    """Records of one kind that belong to a client"""
    if segment not in CLIENT_CHILD_SEGMENTS:
        abort(404)
    kind = resolve_kind(segment)
    services = get_services()

    services.repository('client').get_by_id(client_id)
    result = present_list(kind, services.repository(kind).get_by_client_id(client_id))
    return jsonify({'success': True, **result})


@records_bp.route('/api/appointments/on/<day>', methods=['GET'])
def get_appointments_on(day):
    """Appointments on a calendar day (YYYY-MM-DD)"""
    records = get_services().repository('appointment').get_by_date(day)
    return jsonify({'success': True, **present_list('appointment', records)})
