"""
Remote Record Repository - Production backend over the hosted record API.
Each record kind maps to one table; every read declares the table's field list.
Implements the same RecordRepository contract as the in-memory demo store.
"""

import logging
import threading
import time
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from services.errors import NotFound, RecordApiError
from services.record_store import RecordRepository, Mutator

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network connection failed. Please check your internet connection and try again."

SIGNING_FIELDS = [
    'signing_token', 'signing_status', 'signing_link_created_at', 'signed_at',
]

TABLE_FIELDS = {
    'client': [
        'Name', 'email', 'phone', 'address', 'property_size', 'notes',
        'last_contact', 'status', 'projects_count', 'total_revenue',
    ],
    'project': [
        'Name', 'title', 'description', 'client_id', 'budget', 'actual_cost',
        'progress', 'start_date', 'end_date', 'status', 'notes', 'tasks',
    ],
    'invoice': [
        'Name', 'invoice_number', 'subtotal', 'tax', 'total', 'status',
        'issue_date', 'due_date', 'paid_date', 'notes', 'project_id', 'client_id',
    ] + SIGNING_FIELDS,
    'proposal': [
        'Name', 'title', 'description', 'status', 'subtotal', 'tax', 'total',
        'valid_until', 'accepted_date', 'notes', 'client_id',
    ] + SIGNING_FIELDS,
    'appointment': [
        'Name', 'client_id', 'project_id', 'title', 'type', 'date', 'duration',
        'assigned_crew', 'location', 'status', 'notes',
    ],
}


def _first(data: Dict, *keys: str, default=None):
    for key in keys:
        value = data.get(key)
        if value not in (None, ''):
            return value
    return default


def _int_or_none(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def build_client_payload(data: Dict) -> Dict:
    return {
        'Name': data.get('Name') or data.get('name'),
        'email': data.get('email'),
        'phone': data.get('phone'),
        'address': data.get('address'),
        'property_size': _first(data, 'property_size', 'propertySize'),
        'notes': data.get('notes'),
        'last_contact': _first(data, 'last_contact', 'lastContact'),
        'status': data.get('status') or 'active',
        'projects_count': 0,
        'total_revenue': 0.0,
    }


def build_project_payload(data: Dict) -> Dict:
    return {
        'Name': _first(data, 'Name', 'title'),
        'title': data.get('title'),
        'description': data.get('description'),
        'client_id': _int_or_none(_first(data, 'client_id', 'clientId')),
        'budget': data.get('budget') or 0,
        'actual_cost': 0,
        'progress': 0,
        'start_date': _first(data, 'start_date', 'startDate'),
        'end_date': _first(data, 'end_date', 'endDate'),
        'status': data.get('status') or 'planning',
        'notes': data.get('notes'),
    }


def build_invoice_payload(data: Dict) -> Dict:
    stamp = int(time.time() * 1000)
    return {
        'Name': data.get('Name') or f"Invoice {stamp}",
        'invoice_number': _first(data, 'invoice_number', 'invoiceNumber', default=f"INV-{stamp}"),
        'subtotal': data.get('subtotal') or 0,
        'tax': data.get('tax') or 0,
        'total': data.get('total'),
        'status': 'draft',
        'issue_date': _first(data, 'issue_date', 'issueDate', default=date.today().isoformat()),
        'due_date': _first(data, 'due_date', 'dueDate'),
        'paid_date': None,
        'notes': data.get('notes'),
        'project_id': _int_or_none(_first(data, 'project_id', 'projectId')),
        'client_id': _int_or_none(_first(data, 'client_id', 'clientId')),
    }


def build_proposal_payload(data: Dict) -> Dict:
    return {
        'Name': _first(data, 'Name', 'title'),
        'title': data.get('title'),
        'description': data.get('description'),
        'status': 'pending',
        'subtotal': data.get('subtotal') or 0,
        'tax': data.get('tax') or 0,
        'total': data.get('total') or 0,
        'valid_until': _first(data, 'valid_until', 'validUntil'),
        'notes': data.get('notes'),
        'client_id': _int_or_none(_first(data, 'client_id', 'clientId')),
    }


def build_appointment_payload(data: Dict) -> Dict:
    return {
        'Name': _first(data, 'Name', 'title'),
        'client_id': _int_or_none(_first(data, 'client_id', 'clientId')),
        'project_id': _int_or_none(_first(data, 'project_id', 'projectId')),
        'title': data.get('title'),
        'type': data.get('type'),
        'date': data.get('date'),
        'duration': data.get('duration'),
        'assigned_crew': _first(data, 'assigned_crew', 'assignedCrew'),
        'location': data.get('location'),
        'status': data.get('status') or 'scheduled',
        'notes': data.get('notes'),
    }


PAYLOAD_BUILDERS = {
    'client': build_client_payload,
    'project': build_project_payload,
    'invoice': build_invoice_payload,
    'proposal': build_proposal_payload,
    'appointment': build_appointment_payload,
}


class RecordApiClient:
    """Thin HTTP client for the hosted record API."""

    def __init__(self, base_url: str, project_id: str, public_key: str,
                 timeout: int = 30, session: Optional[requests.Session] = None):
        missing = [
            name for name, value in (
                ('RECORD_API_URL', base_url),
                ('RECORD_API_PROJECT_ID', project_id),
                ('RECORD_API_PUBLIC_KEY', public_key),
            ) if not value
        ]
        if missing:
            raise RecordApiError(f"Record API is not configured: {', '.join(missing)} missing")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'X-Project-Id': project_id,
            'Authorization': f'Bearer {public_key}',
            'Accept': 'application/json',
        })

    def _request(self, method: str, table: str, path: str = '', **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}/tables/{table}/records{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"Record API request failed: {method} {url}: {e}")
            raise RecordApiError(NETWORK_ERROR_MESSAGE, table) from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Record API returned non-JSON response ({response.status_code}) for {method} {url}")
            raise RecordApiError(f"Unexpected response from record API (HTTP {response.status_code})", table) from e

        if not payload.get('success'):
            message = payload.get('message') or f"Record API request failed (HTTP {response.status_code})"
            logger.error(f"Record API error: {message}")
            raise RecordApiError(message, table)

        return payload

    @staticmethod
    def _first_result(payload: Dict[str, Any], action: str, table: str) -> Optional[Dict]:
        results = payload.get('results') or []
        failed = [result for result in results if not result.get('success')]
        if failed:
            logger.error(f"Failed to {action} {len(failed)} {table} records: {failed}")
            raise RecordApiError(failed[0].get('message') or f"Failed to {action} {table}", table)
        return results[0].get('data') if results else None

    def fetch_records(self, table: str, fields: List[str]) -> List[Dict]:
        payload = self._request('GET', table, params={'fields': ','.join(fields)})
        return payload.get('data') or []

    def get_record_by_id(self, table: str, record_id: int, fields: List[str]) -> Optional[Dict]:
        payload = self._request('GET', table, f'/{record_id}', params={'fields': ','.join(fields)})
        return payload.get('data')

    def create_record(self, table: str, records: List[Dict]) -> Optional[Dict]:
        payload = self._request('POST', table, json={'records': records})
        return self._first_result(payload, 'create', table)

    def update_record(self, table: str, records: List[Dict]) -> Optional[Dict]:
        payload = self._request('PUT', table, json={'records': records})
        return self._first_result(payload, 'update', table)

    def delete_record(self, table: str, record_ids: List[int]) -> bool:
        self._request('DELETE', table, json={'RecordIds': record_ids})
        return True


class RemoteRecordRepository(RecordRepository):
    """
    RecordRepository backed by one table of the record API.

    update/delete confirm the record exists first so an unknown id is a
    NotFound rather than an API error. update_with holds a per-table lock
    around its read and write, so writers in one process are serialized.
    The record API has no conditional update, so writers in separate
    processes are not.
    """

    def __init__(self, kind: str, client: RecordApiClient):
        if kind not in TABLE_FIELDS:
            raise ValueError(f"Unknown record kind: {kind}")
        self.kind = kind
        self.client = client
        self.fields = TABLE_FIELDS[kind]
        self._lock = threading.RLock()

    def _record_id(self, record_id) -> int:
        wanted = _int_or_none(record_id)
        if wanted is None:
            raise NotFound(self.kind, record_id)
        return wanted

    def get_all(self) -> List[Dict]:
        return self.client.fetch_records(self.kind, self.fields)

    def get_by_id(self, record_id) -> Dict:
        record = self.client.get_record_by_id(self.kind, self._record_id(record_id), self.fields)
        if not record:
            raise NotFound(self.kind, record_id)
        return record

    def create(self, data: Dict) -> Dict:
        record = self.client.create_record(self.kind, [PAYLOAD_BUILDERS[self.kind](data)])
        logger.info(f"Created {self.kind}: {(record or {}).get('Id')}")
        return record

    def update(self, record_id, data: Dict) -> Dict:
        wanted = self.get_by_id(record_id)['Id']
        changes = {k: v for k, v in data.items() if k not in ('Id', 'id')}
        record = self.client.update_record(self.kind, [{'Id': wanted, **changes}])
        logger.info(f"Updated {self.kind}: {wanted}")
        return record

    def delete(self, record_id) -> bool:
        wanted = self.get_by_id(record_id)['Id']
        self.client.delete_record(self.kind, [wanted])
        logger.info(f"Deleted {self.kind}: {wanted}")
        return True

    def update_with(self, record_id, mutator: Mutator) -> Dict:
        with self._lock:
            current = self.get_by_id(record_id)
            changes = mutator(dict(current))
            if not changes:
                return current
            return self.update(record_id, changes)
