"""
Record Store - Repository interface and the in-memory demo backend.
Holds one ordered collection per record kind (clients, projects, invoices,
proposals, appointments), seeded from JSON fixtures at startup.
"""

import copy
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from normalizers import parse_date, resolve_alias
from services.errors import NotFound

logger = logging.getLogger(__name__)

FIXTURES_DIR = Path(__file__).parent / 'fixtures'

RECORD_KINDS = ('client', 'project', 'invoice', 'proposal', 'appointment')

# Business status a signature promotes a record to
TERMINAL_STATUS = {
    'invoice': 'paid',
    'proposal': 'accepted',
}

# Storage names used by the demo store (mock data naming)
CAMEL_FIELDS = {
    'client_id': 'clientId',
    'project_id': 'projectId',
    'created_at': 'createdAt',
    'invoice_number': 'invoiceNumber',
    'issue_date': 'issueDate',
    'due_date': 'dueDate',
    'paid_date': 'paidDate',
    'accepted_date': 'acceptedDate',
    'actual_cost': 'actualCost',
    'projects_count': 'projectsCount',
    'total_revenue': 'totalRevenue',
    'signing_token': 'signingToken',
    'signing_status': 'signingStatus',
    'signing_link_created_at': 'signingLinkCreatedAt',
    'signed_at': 'signedAt',
}

Mutator = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string"""
    return datetime.now(timezone.utc).isoformat()


def status_side_effects(kind: str, status: str, now: Optional[str] = None) -> Dict[str, Any]:
    """
    Extra fields a status change carries, keyed by canonical field name

    Invoice 'paid' stamps the paid date, proposal 'accepted' stamps the
    accepted date, project 'completed' forces progress to 100.
    """
    now = now or utc_now()
    if kind == 'invoice' and status == 'paid':
        return {'paid_date': now}
    if kind == 'proposal' and status == 'accepted':
        return {'accepted_date': now}
    if kind == 'project' and status == 'completed':
        return {'progress': 100}
    return {}


def load_fixture(kind: str) -> List[Dict[str, Any]]:
    """Load the seed records for a kind, or an empty list when none ship"""
    path = FIXTURES_DIR / f"{kind}s.json"
    if not path.exists():
        logger.warning(f"No fixture data for {kind} at {path}")
        return []
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


class RecordRepository(ABC):
    """Store contract shared by the demo backend and the remote record API."""

    kind: str = ''

    @abstractmethod
    def get_all(self) -> List[Dict]:
        """Return every record of this kind."""

    @abstractmethod
    def get_by_id(self, record_id) -> Dict:
        """Return one record; raises NotFound."""

    @abstractmethod
    def create(self, data: Dict) -> Dict:
        """Create a record and return it with its assigned Id."""

    @abstractmethod
    def update(self, record_id, data: Dict) -> Dict:
        """Merge partial fields onto a record; raises NotFound."""

    @abstractmethod
    def delete(self, record_id) -> bool:
        """Remove a record permanently; raises NotFound."""

    @abstractmethod
    def update_with(self, record_id, mutator: Mutator) -> Dict:
        """
        Apply mutator(current) and persist the changes it returns.

        A mutator returning None leaves the record untouched. A mutator that
        raises leaves the record untouched and the error propagates.
        """

    def field(self, name: str) -> str:
        """Storage name for a canonical field"""
        return name

    def update_status(self, record_id, status: str) -> Dict:
        """Update only the status, with the kind's side effects"""
        changes = {'status': status}
        for name, value in status_side_effects(self.kind, status).items():
            changes[self.field(name)] = value
        record = self.update(record_id, changes)
        logger.info(f"{self.kind.capitalize()} {record_id} status -> {status}")
        return record

    def get_by_client_id(self, client_id) -> List[Dict]:
        """Records referencing the given client"""
        try:
            wanted = int(client_id)
        except (TypeError, ValueError):
            return []
        return [
            r for r in self.get_all()
            if _as_int(resolve_alias(r, ('client_id', 'clientId'))) == wanted
        ]

    def get_by_date(self, day) -> List[Dict]:
        """Records whose 'date' falls on the given calendar day (appointments)"""
        wanted = parse_date(day)
        if wanted is None:
            return []
        return [
            r for r in self.get_all()
            if (parse_date(r.get('date')) or datetime.min).date() == wanted.date()
        ]

    def find_one(self, predicate: Callable[[Dict], bool]) -> Optional[Dict]:
        """First record matching the predicate, or None"""
        for record in self.get_all():
            if predicate(record):
                return record
        return None


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class InMemoryRecordStore(RecordRepository):
    """
    Fixture-seeded in-memory collection for one record kind.

    Every read returns deep copies, every mutation runs under the
    collection's lock, and identifiers are never reused within a process.
    """

    def __init__(self, kind: str, records: Optional[List[Dict]] = None, latency_ms: int = 0):
        if kind not in RECORD_KINDS:
            raise ValueError(f"Unknown record kind: {kind}")
        self.kind = kind
        self.latency = max(latency_ms, 0) / 1000
        self._lock = threading.RLock()
        seed = load_fixture(kind) if records is None else records
        self._records: List[Dict] = copy.deepcopy(list(seed))
        self._last_id = max((_as_int(r.get('Id')) or 0 for r in self._records), default=0)
        logger.debug(f"Seeded {len(self._records)} {kind} records")

    # ==================== INTERNALS ====================

    def _delay(self):
        """Simulated backend round trip"""
        if self.latency:
            time.sleep(self.latency)

    def _index_of(self, record_id) -> int:
        wanted = _as_int(record_id)
        if wanted is not None:
            for index, record in enumerate(self._records):
                if record.get('Id') == wanted:
                    return index
        raise NotFound(self.kind, record_id)

    def _apply_defaults(self, record: Dict, now: str) -> None:
        """Kind-specific defaults applied on creation"""

    def field(self, name: str) -> str:
        return CAMEL_FIELDS.get(name, name)

    def count(self) -> int:
        """Number of stored records, without the simulated latency"""
        with self._lock:
            return len(self._records)

    # ==================== CONTRACT ====================

    def get_all(self) -> List[Dict]:
        self._delay()
        with self._lock:
            return copy.deepcopy(self._records)

    def get_by_id(self, record_id) -> Dict:
        self._delay()
        with self._lock:
            return copy.deepcopy(self._records[self._index_of(record_id)])

    def create(self, data: Dict) -> Dict:
        self._delay()
        with self._lock:
            new_id = self._last_id + 1
            now = utc_now()
            record = {k: v for k, v in copy.deepcopy(data).items() if k not in ('Id', 'id')}
            record['Id'] = new_id
            record['createdAt'] = now
            self._apply_defaults(record, now)
            self._records.append(record)
            self._last_id = new_id
            logger.info(f"Created {self.kind}: {new_id}")
            return copy.deepcopy(record)

    def update(self, record_id, data: Dict) -> Dict:
        self._delay()
        with self._lock:
            index = self._index_of(record_id)
            changes = {k: v for k, v in copy.deepcopy(data).items() if k not in ('Id', 'id')}
            self._records[index] = {**self._records[index], **changes}
            logger.info(f"Updated {self.kind}: {self._records[index]['Id']}")
            return copy.deepcopy(self._records[index])

    def delete(self, record_id) -> bool:
        self._delay()
        with self._lock:
            index = self._index_of(record_id)
            removed = self._records.pop(index)
            logger.info(f"Deleted {self.kind}: {removed['Id']}")
            return True

    def update_with(self, record_id, mutator: Mutator) -> Dict:
        self._delay()
        with self._lock:
            index = self._index_of(record_id)
            changes = mutator(copy.deepcopy(self._records[index]))
            if changes:
                changes = {k: v for k, v in copy.deepcopy(changes).items() if k not in ('Id', 'id')}
                self._records[index] = {**self._records[index], **changes}
                logger.info(f"Updated {self.kind}: {self._records[index]['Id']} ({', '.join(sorted(changes))})")
            return copy.deepcopy(self._records[index])

    def update_status(self, record_id, status: str) -> Dict:
        # One critical section for the status and its side effects
        with self._lock:
            return super().update_status(record_id, status)


class ClientStore(InMemoryRecordStore):
    """Clients with zeroed revenue counters on creation."""

    def __init__(self, records=None, latency_ms: int = 0):
        super().__init__('client', records, latency_ms)

    def _apply_defaults(self, record, now):
        record['status'] = record.get('status') or 'active'
        record['projectsCount'] = 0
        record['totalRevenue'] = 0.0


class ProjectStore(InMemoryRecordStore):
    """Projects start at zero progress and cost."""

    def __init__(self, records=None, latency_ms: int = 0):
        super().__init__('project', records, latency_ms)

    def _apply_defaults(self, record, now):
        record['status'] = record.get('status') or 'planning'
        record['progress'] = 0
        record['actualCost'] = 0.0
        record['tasks'] = []


class InvoiceStore(InMemoryRecordStore):
    """Invoices always start as unpaid drafts."""

    def __init__(self, records=None, latency_ms: int = 0):
        super().__init__('invoice', records, latency_ms)

    def _apply_defaults(self, record, now):
        record['status'] = 'draft'
        record['paidDate'] = None
        if not resolve_alias(record, ('invoice_number', 'invoiceNumber')):
            record['invoiceNumber'] = f"INV-{record['Id']:04d}"
        if not resolve_alias(record, ('issue_date', 'issueDate')):
            record['issueDate'] = date.today().isoformat()
        record.setdefault('subtotal', 0)
        record.setdefault('tax', 0)


class ProposalStore(InMemoryRecordStore):
    """Proposals always start pending."""

    def __init__(self, records=None, latency_ms: int = 0):
        super().__init__('proposal', records, latency_ms)

    def _apply_defaults(self, record, now):
        record['status'] = 'pending'
        record.setdefault('subtotal', 0)
        record.setdefault('tax', 0)
        record.setdefault('total', 0)


class AppointmentStore(InMemoryRecordStore):
    """Appointments default to scheduled."""

    def __init__(self, records=None, latency_ms: int = 0):
        super().__init__('appointment', records, latency_ms)

    def _apply_defaults(self, record, now):
        record['status'] = record.get('status') or 'scheduled'


STORE_CLASSES = {
    'client': ClientStore,
    'project': ProjectStore,
    'invoice': InvoiceStore,
    'proposal': ProposalStore,
    'appointment': AppointmentStore,
}
