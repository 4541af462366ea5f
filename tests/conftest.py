"""
Pytest configuration and shared fixtures
"""
import os
import sys
import pytest
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'x7Qm2Lr9Vb4Nk8Zt1Hy6Jw3Pc5Fd0Gs'
    os.environ['STORAGE_MODE'] = 'memory'

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def app(app_config):
    """Flask app on fresh fixture-seeded stores"""
    from app_init import create_app
    return create_app(app_config)


@pytest.fixture
def client(app):
    """Flask test client"""
    return app.test_client()


@pytest.fixture
def services(app):
    """Record services attached to the test app"""
    return app.extensions['record_services']


@pytest.fixture
def stores():
    """One empty in-memory store per record kind"""
    from services.record_store import STORE_CLASSES
    return {kind: store_class(records=[]) for kind, store_class in STORE_CLASSES.items()}


@pytest.fixture
def seeded_stores():
    """One fixture-seeded in-memory store per record kind"""
    from services.record_store import STORE_CLASSES
    return {kind: store_class() for kind, store_class in STORE_CLASSES.items()}


@pytest.fixture
def invoice_store():
    from services.record_store import InvoiceStore
    return InvoiceStore(records=[])


@pytest.fixture
def invoice_signing(invoice_store):
    """Signing service over an empty invoice store"""
    from services.signing_service import SigningService
    return SigningService(invoice_store, 'https://app.example.com')


@pytest.fixture
def sample_invoice_data():
    """Invoice form as the dashboard submits it"""
    return {
        'client_id': 7,
        'total': 500,
        'dueDate': '2025-01-01',
    }


@pytest.fixture
def sample_project_data():
    """Valid project form"""
    return {
        'title': 'Landscape Redesign',
        'client_id': 1,
        'budget': 12500,
        'startDate': '2025-03-01',
        'endDate': '2025-05-30',
        'description': 'Front and back yard redesign with native plants',
    }


@pytest.fixture
def sample_client_data():
    """Valid client form"""
    return {
        'Name': 'Maple Street HOA',
        'email': 'board@maplestreethoa.org',
        'phone': '(555) 010-4477',
        'address': '12 Maple Street',
    }


@pytest.fixture
def sample_appointment_data():
    """Valid appointment form"""
    return {
        'title': 'Site survey',
        'client_id': 1,
        'date': '2025-06-02T09:00:00Z',
        'duration': 90,
        'location': '12 Maple Street',
        'type': 'consultation',
    }
