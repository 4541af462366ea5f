"""
List filtering used by the record list endpoints.
"""

from typing import Dict, Iterable, List, Optional

from normalizers import safe_string

# Fields each list page searches across
SEARCH_FIELDS = {
    'client': ('Name', 'email', 'phone', 'address'),
    'project': ('title', 'description', 'Name', 'notes'),
    'invoice': ('invoice_number', 'Name', 'notes'),
    'proposal': ('title', 'description', 'notes'),
    'appointment': ('title', 'location', 'type', 'notes'),
}


def filter_records(records: Iterable[Dict], search_term: Optional[str] = None,
                   status: Optional[str] = None, fields: Iterable[str] = ()) -> List[Dict]:
    """
    Filter records by a case-insensitive search term and a status

    Args:
        records: Canonical records
        search_term: Substring matched against any of `fields`; blank matches all
        status: Exact status to keep; blank or 'all' keeps every status
        fields: Field names to search

    Returns:
        Matching records in their original order
    """
    needle = safe_string(search_term).lower()
    wanted_status = safe_string(status)
    fields = tuple(fields)

    matches = []
    for record in records:
        if wanted_status and wanted_status != 'all' and safe_string(record.get('status')) != wanted_status:
            continue
        if needle and not any(needle in safe_string(record.get(field)).lower() for field in fields):
            continue
        matches.append(record)
    return matches
