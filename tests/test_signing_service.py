"""
Tests for the signing-link lifecycle
"""
import re
import threading
import pytest
from unittest.mock import patch
from services.errors import InvalidToken, NotFound
from services.record_store import ClientStore, ProposalStore
from services.signing_service import (
    SigningService,
    TOKEN_PATTERN,
    generate_token,
)

LINK_PATTERN = re.compile(r'^https?://.*/sign/invoice/[A-Za-z0-9_-]{32}$')


@pytest.mark.unit
class TestTokens:
    """Tests for token generation"""

    def test_token_length_and_alphabet(self):
        token = generate_token(32)
        assert len(token) == 32
        assert TOKEN_PATTERN.match(token)

    def test_tokens_differ(self):
        assert len({generate_token() for _ in range(50)}) == 50

    def test_unsignable_kind(self):
        with pytest.raises(ValueError):
            SigningService(ClientStore(records=[]), 'https://app.example.com')


@pytest.mark.unit
class TestInvoiceScenario:
    """Create, link and sign an invoice end to end"""

    def test_full_lifecycle(self, invoice_store, invoice_signing, sample_invoice_data):
        invoice = invoice_store.create(sample_invoice_data)
        assert invoice['status'] == 'draft'
        assert isinstance(invoice['Id'], int) and invoice['Id'] > 0
        assert invoice['paidDate'] is None

        result = invoice_signing.generate_signing_link(invoice['Id'])
        assert LINK_PATTERN.match(result['signingLink'])

        invoice_signing.update_signing_status(invoice['Id'], 'signed')
        assert invoice_store.get_by_id(invoice['Id'])['status'] == 'paid'


@pytest.mark.unit
class TestGenerateSigningLink:
    """Tests for link generation"""

    def test_link_contains_token_once(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        result = invoice_signing.generate_signing_link(invoice['Id'])
        assert result['signingLink'].count(result['signingToken']) == 1
        assert result['signingLink'] == f"https://app.example.com/sign/invoice/{result['signingToken']}"

    def test_token_and_timestamp_stored(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        result = invoice_signing.generate_signing_link(invoice['Id'])
        stored = invoice_store.get_by_id(invoice['Id'])
        assert stored['signingToken'] == result['signingToken']
        assert stored['signingLinkCreatedAt']
        assert 'signingLink' not in stored

    def test_regenerating_returns_same_link(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        first = invoice_signing.generate_signing_link(invoice['Id'])
        second = invoice_signing.generate_signing_link(invoice['Id'])
        assert first['signingToken'] == second['signingToken']
        assert first['signingLink'] == second['signingLink']

    def test_concurrent_generation_yields_one_token(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        tokens = []
        lock = threading.Lock()

        def worker():
            token = invoice_signing.generate_signing_link(invoice['Id'])['signingToken']
            with lock:
                tokens.append(token)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(tokens)) == 1
        assert invoice_store.get_by_id(invoice['Id'])['signingToken'] == tokens[0]

    def test_unknown_record(self, invoice_signing):
        with pytest.raises(NotFound):
            invoice_signing.generate_signing_link(999999)

    def test_record_is_decorated(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        result = invoice_signing.generate_signing_link(invoice['Id'])
        assert result['record']['signingLink'] == result['signingLink']

    def test_collision_mints_again(self, invoice_store, invoice_signing):
        taken = invoice_store.create({'client_id': 1, 'total': 10})
        invoice_store.update(taken['Id'], {'signingToken': 'A' * 32})
        invoice = invoice_store.create({'client_id': 1, 'total': 20})

        with patch('services.signing_service.generate_token', side_effect=['A' * 32, 'B' * 32]):
            result = invoice_signing.generate_signing_link(invoice['Id'])

        assert result['signingToken'] == 'B' * 32

    def test_gives_up_after_repeated_collisions(self, invoice_store, invoice_signing):
        taken = invoice_store.create({'client_id': 1, 'total': 10})
        invoice_store.update(taken['Id'], {'signingToken': 'A' * 32})
        invoice = invoice_store.create({'client_id': 1, 'total': 20})

        with patch('services.signing_service.generate_token', return_value='A' * 32):
            with pytest.raises(RuntimeError):
                invoice_signing.generate_signing_link(invoice['Id'])


@pytest.mark.unit
class TestGetBySigningToken:
    """Tests for token resolution"""

    def test_round_trip_returns_same_record(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        token = invoice_signing.generate_signing_link(invoice['Id'])['signingToken']
        assert invoice_signing.get_by_signing_token(token)['Id'] == invoice['Id']

    @pytest.mark.parametrize('token', [None, '', 'short', 'x' * 33, '!' * 32, 42])
    def test_malformed_tokens(self, invoice_signing, token):
        with pytest.raises(InvalidToken):
            invoice_signing.get_by_signing_token(token)

    def test_unknown_token(self, invoice_store, invoice_signing):
        invoice_store.create({'client_id': 1, 'total': 10})
        with pytest.raises(InvalidToken):
            invoice_signing.get_by_signing_token('Z' * 32)

    def test_prefix_does_not_match(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        token = invoice_signing.generate_signing_link(invoice['Id'])['signingToken']
        with pytest.raises(InvalidToken):
            invoice_signing.get_by_signing_token(token[:-1])

    def test_records_without_tokens_never_match(self, invoice_store, invoice_signing):
        invoice_store.create({'client_id': 1, 'total': 10, 'signingToken': ''})
        with pytest.raises(InvalidToken):
            invoice_signing.get_by_signing_token('Q' * 32)


@pytest.mark.unit
class TestUpdateSigningStatus:
    """Tests for signing status changes"""

    def test_signing_invoice_marks_paid(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        invoice_signing.generate_signing_link(invoice['Id'])
        invoice_signing.update_signing_status(invoice['Id'], 'signed')

        stored = invoice_store.get_by_id(invoice['Id'])
        assert stored['signingStatus'] == 'signed'
        assert stored['status'] == 'paid'
        assert stored['signedAt'] is not None
        assert stored['paidDate'] is not None

    def test_signing_proposal_marks_accepted(self):
        store = ProposalStore(records=[])
        signing = SigningService(store, 'https://app.example.com/')
        proposal = store.create({'title': 'Terrace', 'client_id': 3})
        link = signing.generate_signing_link(proposal['Id'])['signingLink']
        assert '/sign/proposal/' in link
        assert '//sign' not in link

        signing.update_signing_status(proposal['Id'], 'signed')
        stored = store.get_by_id(proposal['Id'])
        assert stored['status'] == 'accepted'
        assert stored['acceptedDate'] is not None

    def test_resigning_is_a_no_op(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        invoice_signing.update_signing_status(invoice['Id'], 'signed')
        first = invoice_store.get_by_id(invoice['Id'])

        invoice_signing.update_signing_status(invoice['Id'], 'signed')
        assert invoice_store.get_by_id(invoice['Id']) == first

    def test_signed_record_cannot_move_back(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        invoice_signing.update_signing_status(invoice['Id'], 'signed')
        first = invoice_store.get_by_id(invoice['Id'])

        invoice_signing.update_signing_status(invoice['Id'], 'unsigned')
        assert invoice_store.get_by_id(invoice['Id'])['signingStatus'] == 'signed'

        invoice_store.update_status(invoice['Id'], 'overdue')
        invoice_signing.update_signing_status(invoice['Id'], 'signed')

        stored = invoice_store.get_by_id(invoice['Id'])
        assert stored['signingStatus'] == 'signed'
        assert stored['signedAt'] == first['signedAt']
        assert stored['paidDate'] == first['paidDate']
        assert stored['status'] == 'overdue'

    def test_other_status_has_no_side_effects(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        invoice_signing.update_signing_status(invoice['Id'], 'viewed')

        stored = invoice_store.get_by_id(invoice['Id'])
        assert stored['signingStatus'] == 'viewed'
        assert stored['status'] == 'draft'
        assert 'signedAt' not in stored

    def test_unknown_record(self, invoice_signing):
        with pytest.raises(NotFound):
            invoice_signing.update_signing_status(999999, 'signed')

    def test_sign_by_token(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        token = invoice_signing.generate_signing_link(invoice['Id'])['signingToken']
        signed = invoice_signing.sign(token)
        assert signed['status'] == 'paid'
        assert signed['signingLink'].endswith(token)

    def test_signing_keeps_the_link(self, invoice_store, invoice_signing):
        invoice = invoice_store.create({'client_id': 1, 'total': 10})
        token = invoice_signing.generate_signing_link(invoice['Id'])['signingToken']
        invoice_signing.sign(token)
        assert invoice_signing.get_by_signing_token(token)['Id'] == invoice['Id']


@pytest.mark.unit
class TestAttachSigningLink:
    """Tests for the derived signingLink field"""

    def test_no_token_no_link(self, invoice_signing):
        assert 'signingLink' not in invoice_signing.attach_signing_link({'Id': 1})

    def test_stale_link_replaced(self, invoice_signing):
        record = {'Id': 1, 'signingToken': 'T' * 32, 'signingLink': 'https://old.example/sign/x'}
        decorated = invoice_signing.attach_signing_link(record)
        assert decorated['signingLink'] == f"https://app.example.com/sign/invoice/{'T' * 32}"

    def test_snake_case_token(self, invoice_signing):
        decorated = invoice_signing.attach_signing_link({'Id': 1, 'signing_token': 'S' * 32})
        assert decorated['signingLink'].endswith('S' * 32)

    def test_does_not_mutate_input(self, invoice_signing):
        record = {'Id': 1, 'signingToken': 'T' * 32}
        invoice_signing.attach_signing_link(record)
        assert 'signingLink' not in record
