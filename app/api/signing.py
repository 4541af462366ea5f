"""
Signing Routes Blueprint

Staff side:
- POST  /api/<invoices|proposals>/<id>/signing-link: Generate (or return) the link
- PATCH /api/<invoices|proposals>/<id>/signing-status: Set the signing status

Signer side (no authentication, the token is the credential):
- GET  /sign/<invoice|proposal>/<token>: Document summary for the signer
- POST /sign/<invoice|proposal>/<token>: Sign the document
"""

import logging
from typing import Dict

from flask import Blueprint, abort, jsonify

from app.api.records import get_services, present, read_json_body
from normalizers import normalize_record, safe_currency_format, safe_date_format
from services.errors import ValidationFailed
from validators import format_success_response, validate_required_fields

logger = logging.getLogger(__name__)

# Create blueprint
signing_bp = Blueprint('signing_bp', __name__)

SIGNABLE_SEGMENTS = {
    'invoices': 'invoice',
    'proposals': 'proposal',
}

# Fields the signer page may see
PUBLIC_FIELDS = {
    'invoice': ('Id', 'Name', 'invoice_number', 'subtotal', 'tax', 'total', 'issue_date',
                'due_date', 'status', 'signing_status', 'signed_at'),
    'proposal': ('Id', 'title', 'description', 'subtotal', 'tax', 'total', 'valid_until',
                 'status', 'signing_status', 'signed_at'),
}

DISPLAY_DATES = {
    'invoice': 'due_date',
    'proposal': 'valid_until',
}


def signing_for_segment(segment: str):
    kind = SIGNABLE_SEGMENTS.get(segment)
    if kind is None:
        abort(404)
    return kind, get_services().signing(kind)


def signing_for_kind(kind: str):
    if kind not in SIGNABLE_SEGMENTS.values():
        abort(404)
    return get_services().signing(kind)


def public_view(kind: str, record: Dict) -> Dict:
    """Signer-safe subset of a record with display strings"""
    canonical = normalize_record(kind, record) or {}
    view = {field: canonical.get(field) for field in PUBLIC_FIELDS[kind]}
    view['kind'] = kind
    view['totalDisplay'] = safe_currency_format(canonical.get('total'))
    view['dateDisplay'] = safe_date_format(canonical.get(DISPLAY_DATES[kind]))
    return view


# ============================================================================
# STAFF
# ============================================================================

@signing_bp.route('/api/<segment>/<int:record_id>/signing-link', methods=['POST'])
def generate_signing_link(segment, record_id):
    """Generate a public signing link, or return the existing one"""
    kind, signing = signing_for_segment(segment)
    result = signing.generate_signing_link(record_id)
    return jsonify(format_success_response({
        'signingLink': result['signingLink'],
        'signingToken': result['signingToken'],
        'record': present(kind, result['record']),
    }, "Signing link ready"))


@signing_bp.route('/api/<segment>/<int:record_id>/signing-status', methods=['PATCH'])
def update_signing_status(segment, record_id):
    """Set the signing status; 'signed' also promotes the business status"""
    kind, signing = signing_for_segment(segment)
    data = read_json_body()

    is_valid, error = validate_required_fields(data, ['signingStatus'])
    if not is_valid:
        raise ValidationFailed(kind, {'signingStatus': error})
    status = data['signingStatus']
    if not isinstance(status, str):
        raise ValidationFailed(kind, {'signingStatus': "Signing status must be a string"})

    record = signing.update_signing_status(record_id, status)
    return jsonify(format_success_response(present(kind, record), "Signing status updated"))


# ============================================================================
# SIGNER
# ============================================================================

@signing_bp.route('/sign/<kind>/<token>', methods=['GET'])
def view_signing_document(kind, token):
    """Document summary for the holder of a signing link"""
    signing = signing_for_kind(kind)
    record = signing.get_by_signing_token(token)
    return jsonify(format_success_response(public_view(kind, record)))


@signing_bp.route('/sign/<kind>/<token>', methods=['POST'])
def sign_document(kind, token):
    """Sign the document behind a signing link"""
    signing = signing_for_kind(kind)
    record = signing.sign(token)
    logger.info(f"{kind.capitalize()} {record.get('Id')} signed via public link")
    return jsonify(format_success_response(public_view(kind, record), f"{kind.capitalize()} signed"))
