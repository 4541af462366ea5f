"""
Signing Service - Public signing links for invoices and proposals.

Lifecycle: NoLink -> LinkGenerated -> Signed.
- generate_signing_link mints a token once and returns the same link afterwards
- update_signing_status('signed') promotes the business status in the same write
- get_by_signing_token resolves a link for the unauthenticated signer page
"""

import logging
import re
import secrets
import string
from typing import Any, Dict, Optional

from normalizers import resolve_alias
from services.errors import InvalidToken
from services.record_store import (
    RecordRepository, TERMINAL_STATUS, status_side_effects, utc_now
)

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits + '_-'
TOKEN_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
MAX_MINT_ATTEMPTS = 5

SIGNED = 'signed'
UNSIGNED = 'unsigned'


def generate_token(length: int = 32) -> str:
    """Cryptographically random URL-safe token of exactly `length` characters"""
    return ''.join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


class SigningService:
    """Signing-link lifecycle for one signable record kind."""

    def __init__(self, repository: RecordRepository, base_url: str, token_length: int = 32):
        if repository.kind not in TERMINAL_STATUS:
            raise ValueError(f"{repository.kind} records cannot be signed")
        self.repository = repository
        self.kind = repository.kind
        self.base_url = base_url.rstrip('/')
        self.token_length = token_length

    # ==================== HELPERS ====================

    def _token_of(self, record: Dict) -> Optional[str]:
        token = resolve_alias(record, ('signing_token', 'signingToken'))
        return token or None

    def _status_of(self, record: Dict) -> str:
        return resolve_alias(record, ('signing_status', 'signingStatus')) or UNSIGNED

    def build_link(self, token: str) -> str:
        """Public signing URL for a token"""
        return f"{self.base_url}/sign/{self.kind}/{token}"

    def attach_signing_link(self, record: Dict) -> Dict:
        """
        Copy of the record with signingLink derived from its token

        Records without a token come back without a signingLink.
        """
        decorated = {k: v for k, v in record.items() if k not in ('signingLink', 'signing_link')}
        token = self._token_of(record)
        if token:
            decorated['signingLink'] = self.build_link(token)
        return decorated

    def _mint_unique_token(self) -> str:
        for _ in range(MAX_MINT_ATTEMPTS):
            token = generate_token(self.token_length)
            if self.repository.find_one(lambda r: self._token_of(r) == token) is None:
                return token
            logger.warning(f"Signing token collision for {self.kind}, minting again")
        raise RuntimeError(f"Could not mint a unique {self.kind} signing token")

    # ==================== LIFECYCLE ====================

    def generate_signing_link(self, record_id) -> Dict[str, Any]:
        """
        Create the signing link for a record, or return the existing one

        Returns:
            Dict with signingLink, signingToken and the refreshed record

        Raises:
            NotFound: unknown record id
        """
        existing = self.repository.get_by_id(record_id)
        candidate = self._token_of(existing) or self._mint_unique_token()
        field = self.repository.field
        minted = []

        def mint(current: Dict) -> Optional[Dict]:
            if self._token_of(current):
                return None
            minted.append(candidate)
            return {
                field('signing_token'): candidate,
                field('signing_link_created_at'): utc_now(),
            }

        record = self.repository.update_with(record_id, mint)
        token = self._token_of(record)
        if minted:
            logger.info(f"Generated signing link for {self.kind} {record_id}")
        else:
            logger.info(f"Reusing existing signing link for {self.kind} {record_id}")

        return {
            'signingLink': self.build_link(token),
            'signingToken': token,
            'record': self.attach_signing_link(record),
        }

    def get_by_signing_token(self, token: str) -> Dict:
        """
        Resolve a record from its signing token (exact match only)

        Raises:
            InvalidToken: blank, malformed or unknown token
        """
        if not isinstance(token, str) or len(token) != self.token_length or not TOKEN_PATTERN.match(token):
            logger.warning(f"Rejected malformed {self.kind} signing token")
            raise InvalidToken(self.kind)

        record = self.repository.find_one(lambda r: self._token_of(r) == token)
        if record is None:
            logger.warning(f"Unknown {self.kind} signing token")
            raise InvalidToken(self.kind)
        return self.attach_signing_link(record)

    def update_signing_status(self, record_id, status: str) -> Dict:
        """
        Set the signing status of a record

        'signed' also stamps signedAt and forces the business status to its
        terminal value (invoice -> paid, proposal -> accepted) with its date
        stamp, all in one write. Any other value is stored as given while the
        record is unsigned. Once signed the signing fields are final: a second
        'signed' or an attempt to move back changes nothing.

        Raises:
            NotFound: unknown record id
        """
        field = self.repository.field
        terminal = TERMINAL_STATUS[self.kind]
        already_signed = []

        def apply(current: Dict) -> Optional[Dict]:
            if self._status_of(current) == SIGNED:
                already_signed.append(True)
                return None
            if status != SIGNED:
                return {field('signing_status'): status}
            now = utc_now()
            changes = {
                field('signing_status'): SIGNED,
                field('signed_at'): now,
                'status': terminal,
            }
            for name, value in status_side_effects(self.kind, terminal, now).items():
                changes[field(name)] = value
            return changes

        record = self.repository.update_with(record_id, apply)

        if already_signed:
            logger.info(f"{self.kind.capitalize()} {record_id} already signed, ignoring signing status {status}")
        elif status == SIGNED:
            logger.info(f"{self.kind.capitalize()} {record_id} signed, status -> {terminal}")
        else:
            logger.info(f"{self.kind.capitalize()} {record_id} signing status -> {status}")
        return self.attach_signing_link(record)

    def sign(self, token: str) -> Dict:
        """Signer-facing entry point: resolve the token, then mark it signed"""
        record = self.get_by_signing_token(token)
        return self.update_signing_status(record['Id'], SIGNED)
