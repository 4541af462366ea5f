"""
Dashboard summary statistics computed from canonical records.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from normalizers import parse_date, safe_number

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


def _as_utc(value) -> Optional[datetime]:
    parsed = parse_date(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def upcoming_appointments(appointments: List[Dict], now: Optional[datetime] = None,
                          limit: int = RECENT_LIMIT) -> List[Dict]:
    """Scheduled appointments from now on, soonest first"""
    now = _as_utc(now or datetime.now(timezone.utc))
    dated = []
    for appointment in appointments:
        when = _as_utc(appointment.get('date'))
        if when is not None and when >= now and appointment.get('status') == 'scheduled':
            dated.append((when, appointment))
    dated.sort(key=lambda pair: pair[0])
    return [appointment for _, appointment in dated[:limit]]


def recent_projects(projects: List[Dict], limit: int = RECENT_LIMIT) -> List[Dict]:
    """Most recently created projects first; undated projects sort last"""
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    ordered = sorted(projects, key=lambda p: _as_utc(p.get('CreatedOn')) or epoch, reverse=True)
    return ordered[:limit]


def compute_dashboard_stats(clients: List[Dict], projects: List[Dict], invoices: List[Dict],
                            appointments: List[Dict], now: Optional[datetime] = None) -> Dict:
    """
    Summary figures for the dashboard page

    Args:
        clients, projects, invoices, appointments: Canonical records
        now: Reference time for upcoming appointments (defaults to current UTC time)

    Returns:
        Dictionary of totals plus the upcoming appointments and recent projects
    """
    total_revenue = sum(safe_number(i.get('total')) for i in invoices if i.get('status') == 'paid')
    stats = {
        'totalRevenue': round(total_revenue, 2),
        'activeProjects': sum(1 for p in projects if p.get('status') == 'in-progress'),
        'totalClients': len(clients),
        'pendingInvoices': sum(1 for i in invoices if i.get('status') in ('sent', 'overdue')),
        'upcomingAppointments': upcoming_appointments(appointments, now),
        'recentProjects': recent_projects(projects),
    }
    logger.debug(
        f"Dashboard: revenue={stats['totalRevenue']} active={stats['activeProjects']} "
        f"clients={stats['totalClients']} pending={stats['pendingInvoices']}"
    )
    return stats
