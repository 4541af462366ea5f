"""
Services package for Fieldbook CRM.
Record repositories, the signing-link lifecycle and dashboard helpers.
"""

from services.errors import InvalidToken, NotFound, RecordApiError, ValidationFailed
from services.record_store import InMemoryRecordStore, RecordRepository
from services.registry import RecordServices, build_services
from services.remote_repository import RecordApiClient, RemoteRecordRepository
from services.signing_service import SigningService

__all__ = [
    'InMemoryRecordStore',
    'InvalidToken',
    'NotFound',
    'RecordApiClient',
    'RecordApiError',
    'RecordRepository',
    'RecordServices',
    'RemoteRecordRepository',
    'SigningService',
    'ValidationFailed',
    'build_services',
]
