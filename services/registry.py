"""
Service registry - wires one repository per record kind and one signing
service per signable kind from the application configuration.
"""

import logging
from typing import Any, Dict, Mapping

from services.record_store import RECORD_KINDS, STORE_CLASSES, RecordRepository, TERMINAL_STATUS
from services.remote_repository import RecordApiClient, RemoteRecordRepository
from services.signing_service import SigningService

logger = logging.getLogger(__name__)


class RecordServices:
    """Lookup of repositories and signing services by record kind."""

    def __init__(self, repositories: Dict[str, RecordRepository], signing: Dict[str, SigningService],
                 storage_mode: str = 'memory'):
        self.repositories = repositories
        self.signing_services = signing
        self.storage_mode = storage_mode

    def repository(self, kind: str) -> RecordRepository:
        try:
            return self.repositories[kind]
        except KeyError:
            raise ValueError(f"Unknown record kind: {kind}")

    def signing(self, kind: str) -> SigningService:
        try:
            return self.signing_services[kind]
        except KeyError:
            raise ValueError(f"{kind} records cannot be signed")


def build_repositories(config: Mapping[str, Any]) -> Dict[str, RecordRepository]:
    """Create the repositories for the configured storage mode"""
    mode = config.get('STORAGE_MODE', 'memory')

    if mode == 'remote':
        client = RecordApiClient(
            config.get('RECORD_API_URL'),
            config.get('RECORD_API_PROJECT_ID'),
            config.get('RECORD_API_PUBLIC_KEY'),
            timeout=config.get('RECORD_API_TIMEOUT', 30),
        )
        return {kind: RemoteRecordRepository(kind, client) for kind in RECORD_KINDS}

    if mode != 'memory':
        raise ValueError(f"Unknown STORAGE_MODE: {mode}")

    latency_ms = config.get('STORE_LATENCY_MS', 0)
    return {kind: STORE_CLASSES[kind](latency_ms=latency_ms) for kind in RECORD_KINDS}


def build_services(config: Mapping[str, Any]) -> RecordServices:
    """
    Build every repository and signing service

    Args:
        config: Flask config (or any mapping with the same keys)

    Returns:
        RecordServices registry
    """
    repositories = build_repositories(config)
    base_url = config.get('SIGNING_BASE_URL', 'http://localhost:5000')
    token_length = config.get('SIGNING_TOKEN_LENGTH', 32)
    signing = {
        kind: SigningService(repositories[kind], base_url, token_length)
        for kind in TERMINAL_STATUS
    }
    mode = config.get('STORAGE_MODE', 'memory')
    logger.info(f"Record services ready: storage={mode}, kinds={', '.join(RECORD_KINDS)}")
    return RecordServices(repositories, signing, mode)
