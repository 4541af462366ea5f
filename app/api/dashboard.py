"""
Dashboard Routes Blueprint

- /api/dashboard: Revenue, project, client and invoice totals plus the
  upcoming appointments and most recent projects
"""

import logging

from flask import Blueprint, jsonify

from app.api.records import get_services
from normalizers import normalize_records, safe_currency_format
from services.dashboard import compute_dashboard_stats
from validators import format_success_response

logger = logging.getLogger(__name__)

# Create blueprint
dashboard_bp = Blueprint('dashboard_bp', __name__)


def load_canonical(kind: str):
    records, _ = normalize_records(kind, get_services().repository(kind).get_all())
    return records


@dashboard_bp.route('/api/dashboard', methods=['GET'])
def get_dashboard():
    """Dashboard summary statistics"""
    stats = compute_dashboard_stats(
        clients=load_canonical('client'),
        projects=load_canonical('project'),
        invoices=load_canonical('invoice'),
        appointments=load_canonical('appointment'),
    )
    stats['totalRevenueDisplay'] = safe_currency_format(stats['totalRevenue'])
    return jsonify(format_success_response(stats))
