"""
Record Normalization Utilities
Reconciles mock (camelCase) and backend (snake_case) record shapes into one
canonical representation, and provides the safe coercion helpers the rest of
the application formats values with.
"""
import logging
import math
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Leading float literal, the prefix parseFloat-style parsing accepts
NUMBER_PREFIX = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?')

# Ordered aliases per canonical field. The first defined value wins.
COMMON_ALIASES = {
    'Id': ('Id', 'id'),
    'notes': ('notes',),
    'status': ('status',),
    'CreatedOn': ('CreatedOn', 'created_at', 'createdAt'),
    'Owner': ('Owner', 'owner'),
}

SIGNING_ALIASES = {
    'signing_token': ('signing_token', 'signingToken'),
    'signing_status': ('signing_status', 'signingStatus'),
    'signing_link_created_at': ('signing_link_created_at', 'signingLinkCreatedAt'),
    'signed_at': ('signed_at', 'signedAt'),
}

FIELD_ALIASES = {
    'client': {
        'Name': ('Name', 'name'),
        'email': ('email',),
        'phone': ('phone',),
        'address': ('address',),
        'property_size': ('property_size', 'propertySize'),
        'last_contact': ('last_contact', 'lastContact'),
        'projects_count': ('projects_count', 'projectsCount'),
        'total_revenue': ('total_revenue', 'totalRevenue'),
    },
    'project': {
        'Name': ('Name', 'name', 'title'),
        'title': ('title', 'Name', 'name'),
        'description': ('description',),
        'client_id': ('client_id', 'clientId'),
        'budget': ('budget',),
        'actual_cost': ('actual_cost', 'actualCost'),
        'progress': ('progress',),
        'start_date': ('start_date', 'startDate'),
        'end_date': ('end_date', 'endDate'),
        'tasks': ('tasks',),
    },
    'invoice': {
        'Name': ('Name', 'name', 'invoice_number', 'invoiceNumber'),
        'invoice_number': ('invoice_number', 'invoiceNumber'),
        'client_id': ('client_id', 'clientId'),
        'project_id': ('project_id', 'projectId'),
        'subtotal': ('subtotal',),
        'tax': ('tax',),
        'total': ('total',),
        'issue_date': ('issue_date', 'issueDate'),
        'due_date': ('due_date', 'dueDate'),
        'paid_date': ('paid_date', 'paidDate'),
    },
    'proposal': {
        'Name': ('Name', 'name', 'title'),
        'title': ('title', 'Name', 'name'),
        'description': ('description',),
        'client_id': ('client_id', 'clientId'),
        'subtotal': ('subtotal',),
        'tax': ('tax',),
        'total': ('total',),
        'valid_until': ('valid_until', 'validUntil'),
        'accepted_date': ('accepted_date', 'acceptedDate'),
    },
    'appointment': {
        'Name': ('Name', 'name', 'title'),
        'title': ('title', 'Name', 'name'),
        'client_id': ('client_id', 'clientId'),
        'project_id': ('project_id', 'projectId'),
        'type': ('type',),
        'date': ('date',),
        'duration': ('duration',),
        'assigned_crew': ('assigned_crew', 'assignedCrew'),
        'location': ('location',),
    },
}

DEFAULT_STATUS = {
    'client': 'active',
    'project': 'planning',
    'invoice': 'draft',
    'proposal': 'pending',
    'appointment': 'scheduled',
}

NUMERIC_FIELDS = {
    'projects_count', 'total_revenue', 'budget', 'actual_cost',
    'subtotal', 'tax', 'total', 'duration',
}
REFERENCE_FIELDS = {'client_id', 'project_id'}
# Passed through untouched; formatting happens at display time
DATE_FIELDS = {
    'last_contact', 'start_date', 'end_date', 'issue_date', 'due_date',
    'paid_date', 'valid_until', 'accepted_date', 'date', 'CreatedOn',
    'signing_link_created_at', 'signed_at',
}
PASSTHROUGH_FIELDS = {'Owner', 'tasks', 'assigned_crew'}

SIGNABLE_KINDS = ('invoice', 'proposal')


def safe_string(value: Any) -> str:
    """Coerce any value to a trimmed string without raising"""
    if value is None:
        return ''
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (dict, list, tuple, set)):
        logger.warning(f"Object passed to safe_string: {value!r}")
        return ''
    try:
        return str(value).strip()
    except Exception as e:
        logger.error(f"Error converting to string: {e} ({value!r})")
        return ''


def safe_number(value: Any, default: Optional[float] = 0) -> Optional[float]:
    """
    Coerce a numeric-like value, falling back to a default

    Blank, boolean, non-numeric, NaN and infinite inputs yield the default.
    Strings parse on their leading numeric prefix. Negatives clamp to 0.
    """
    if value is None or value == '' or isinstance(value, bool):
        return default

    if isinstance(value, (int, float)):
        num = float(value)
    else:
        match = NUMBER_PREFIX.match(safe_string(value))
        if not match:
            return default
        try:
            num = float(match.group(0))
        except (TypeError, ValueError, OverflowError):
            return default

    if math.isnan(num) or math.isinf(num):
        return default
    return max(0.0, num)


def safe_progress(value: Any) -> float:
    """Progress percentage clamped to 0..100"""
    return max(0.0, min(100.0, safe_number(value, 0)))


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a date-like value (ISO string, date, datetime or epoch millis)

    Returns:
        Naive or aware datetime, or None when the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def safe_date_format(value: Any) -> str:
    """Render a date as 'Jan 5, 2025', or 'N/A' when it cannot be parsed"""
    parsed = parse_date(value)
    if parsed is None:
        if value not in (None, ''):
            logger.warning(f"Invalid date: {value!r}")
        return 'N/A'
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def safe_currency_format(value: Any) -> str:
    """Render a USD amount as '$1,234.50', or 'N/A' for blanks and junk"""
    if value is None or value == '':
        return 'N/A'
    amount = safe_number(value, None)
    if amount is None:
        return 'N/A'
    return f"${amount:,.2f}"


def resolve_alias(raw: Dict[str, Any], aliases: Iterable[str]) -> Any:
    """Return the first non-None value among the aliases, or None"""
    for alias in aliases:
        value = raw.get(alias)
        if value is not None:
            return value
    return None


def aliases_for(kind: str) -> Dict[str, Tuple[str, ...]]:
    """Full alias table for a kind, common and signing fields included"""
    if kind not in FIELD_ALIASES:
        raise ValueError(f"Unknown record kind: {kind}")
    table = dict(COMMON_ALIASES)
    table.update(FIELD_ALIASES[kind])
    if kind in SIGNABLE_KINDS:
        table.update(SIGNING_ALIASES)
    return table


def _reject(kind: str, reason: str, raw: Any) -> None:
    logger.warning(f"Dropping malformed {kind} record ({reason}): {raw!r}")
    return None


def normalize_record(kind: str, raw: Any) -> Optional[Dict[str, Any]]:
    """
    Convert a raw record of either naming convention into canonical form

    Args:
        kind: Record kind (client, project, invoice, proposal, appointment)
        raw: Raw record mapping

    Returns:
        Canonical record dict, or None when the record must be dropped
    """
    if not isinstance(raw, dict):
        return _reject(kind, 'not an object', raw)

    try:
        table = aliases_for(kind)
        normalized: Dict[str, Any] = {}

        for field, aliases in table.items():
            value = resolve_alias(raw, aliases)
            if field == 'Id':
                normalized[field] = safe_number(value, None)
            elif field in REFERENCE_FIELDS:
                normalized[field] = safe_number(value, None)
            elif field == 'progress':
                normalized[field] = safe_progress(value)
            elif field in NUMERIC_FIELDS:
                normalized[field] = safe_number(value)
            elif field in DATE_FIELDS or field in PASSTHROUGH_FIELDS:
                normalized[field] = value
            elif field == 'signing_token':
                token = safe_string(value)
                if token:
                    normalized[field] = token
            else:
                normalized[field] = safe_string(value)

        if not normalized['Id']:
            return _reject(kind, 'missing or non-numeric Id', raw)
        normalized['Id'] = int(normalized['Id'])
        for field in REFERENCE_FIELDS & normalized.keys():
            if normalized[field] is not None:
                normalized[field] = int(normalized[field])

        if not normalized.get('Name') and not normalized.get('title'):
            return _reject(kind, 'missing name/title', raw)

        normalized['status'] = normalized['status'] or DEFAULT_STATUS[kind]
        if kind in SIGNABLE_KINDS:
            normalized['signing_status'] = normalized['signing_status'] or 'unsigned'

        return normalized

    except Exception as e:
        logger.error(f"Error normalizing {kind} record: {e} ({raw!r})")
        return None


def normalize_records(kind: str, raws: Any) -> Tuple[List[Dict[str, Any]], int]:
    """
    Normalize a batch, dropping malformed records instead of failing

    Returns:
        Tuple of (canonical records, number of rejected records)
    """
    if not isinstance(raws, (list, tuple)):
        logger.warning(f"Expected a list of {kind} records, got {type(raws).__name__}")
        return [], 0

    records = []
    for raw in raws:
        record = normalize_record(kind, raw)
        if record is not None:
            records.append(record)

    rejected = len(raws) - len(records)
    if rejected:
        logger.warning(f"Normalized {len(records)} of {len(raws)} {kind} records ({rejected} dropped)")
    else:
        logger.debug(f"Normalized {len(records)} {kind} records")
    return records, rejected
