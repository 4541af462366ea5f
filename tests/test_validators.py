"""
Tests for input validation utilities and form validators
"""
import pytest
from validators import (
    validate_required_fields,
    validate_email,
    validate_phone,
    validate_string_length,
    validate_number_range,
    sanitize_string,
    parse_positive_int,
    validate_project_form,
    validate_invoice_form,
    validate_proposal_form,
    validate_client_form,
    validate_appointment_form,
    validate_form,
    validate_update,
    format_success_response,
)


@pytest.mark.unit
class TestRequiredFields:
    """Tests for required field validation"""

    def test_all_required_fields_present(self):
        data = {'status': 'paid', 'signingStatus': 'signed'}
        is_valid, error = validate_required_fields(data, ['status', 'signingStatus'])
        assert is_valid is True
        assert error is None

    def test_missing_required_field(self):
        is_valid, error = validate_required_fields({'note': 'x'}, ['status'])
        assert is_valid is False
        assert 'status' in error

    def test_empty_and_none_values(self):
        is_valid, error = validate_required_fields({'status': '', 'signingStatus': None},
                                                   ['status', 'signingStatus'])
        assert is_valid is False
        assert 'status' in error and 'signingStatus' in error


@pytest.mark.unit
class TestEmailValidation:
    """Tests for email validation"""

    @pytest.mark.parametrize('email', [
        'user@example.com',
        'first.last@landscaping.co.uk',
        'crew+spring@example.org',
    ])
    def test_valid_emails(self, email):
        is_valid, error = validate_email(email)
        assert is_valid is True, f"Email {email} should be valid"
        assert error is None

    @pytest.mark.parametrize('email', ['', 'notanemail', '@example.com', 'user@', 'user@example'])
    def test_invalid_emails(self, email):
        is_valid, error = validate_email(email)
        assert is_valid is False
        assert error is not None


@pytest.mark.unit
class TestPhoneValidation:
    """Tests for phone number validation"""

    @pytest.mark.parametrize('phone', ['+14155552671', '(555) 201-3344', '555-448-9021', '555.448.9021'])
    def test_valid_phones(self, phone):
        is_valid, error = validate_phone(phone)
        assert is_valid is True, f"Phone {phone} should be valid"

    @pytest.mark.parametrize('phone', ['', '123', 'call me'])
    def test_invalid_phones(self, phone):
        is_valid, error = validate_phone(phone)
        assert is_valid is False


@pytest.mark.unit
class TestStringAndNumberRules:
    """Tests for length and range helpers"""

    def test_string_length(self):
        assert validate_string_length('Patio', 3, 10) == (True, None)
        assert validate_string_length('ab', 3, 10)[0] is False
        assert validate_string_length('x' * 11, 3, 10)[0] is False

    def test_number_range(self):
        assert validate_number_range(50, 0, 100) == (True, None)
        assert validate_number_range(-1, 0, 100)[0] is False
        assert validate_number_range(101, 0, 100)[0] is False

    def test_number_range_rejects_bool(self):
        assert validate_number_range(True, 0, 100)[0] is False

    def test_sanitize_string(self):
        assert sanitize_string('  Spring\x00 cleanup  ') == 'Spring cleanup'
        assert sanitize_string('x' * 20, max_length=5) == 'xxxxx'
        assert sanitize_string(None) == ''

    @pytest.mark.parametrize('value,expected', [
        (7, 7), ('7', 7), ('12.0', 12), (0, None), (-3, None), ('2.5', None), ('abc', None), (True, None),
    ])
    def test_parse_positive_int(self, value, expected):
        assert parse_positive_int(value) == expected


@pytest.mark.unit
class TestProjectForm:
    """Tests for project form validation"""

    def test_short_title(self):
        errors = validate_project_form({'title': 'ab', 'client_id': 1})
        assert 'title' in errors

    def test_valid_title(self, sample_project_data):
        errors = validate_project_form({'title': 'Landscape Redesign', 'client_id': 1})
        assert 'title' not in errors
        assert validate_project_form(sample_project_data) == {}

    def test_missing_title_and_client(self):
        errors = validate_project_form({})
        assert errors['title'] == 'Project title is required'
        assert errors['client_id'] == 'Client ID is required'

    def test_long_title(self):
        errors = validate_project_form({'title': 'x' * 101, 'client_id': 1})
        assert 'title' in errors

    def test_bad_client_reference(self):
        assert 'client_id' in validate_project_form({'title': 'Patio', 'client_id': 'abc'})
        assert 'client_id' in validate_project_form({'title': 'Patio', 'client_id': -2})

    def test_budget_must_be_positive_and_bounded(self):
        assert 'budget' in validate_project_form({'title': 'Patio', 'client_id': 1, 'budget': -5})
        assert 'budget' in validate_project_form({'title': 'Patio', 'client_id': 1, 'budget': 10_000_000})
        assert 'budget' not in validate_project_form({'title': 'Patio', 'client_id': 1, 'budget': '9500'})

    def test_end_before_start(self):
        errors = validate_project_form({
            'title': 'Patio', 'client_id': 1, 'startDate': '2025-05-01', 'endDate': '2025-04-01',
        })
        assert errors['end_date'] == 'End date must be after start date'

    def test_unparseable_dates(self):
        errors = validate_project_form({
            'title': 'Patio', 'client_id': 1, 'start_date': 'spring', 'end_date': '2025-04-01',
        })
        assert errors['end_date'] == 'Invalid date format'

    def test_invalid_status(self):
        errors = validate_project_form({'title': 'Patio', 'client_id': 1, 'status': 'done'})
        assert 'status' in errors

    def test_all_errors_reported_together(self):
        errors = validate_project_form({'title': 'ab', 'budget': -1, 'notes': 'x' * 501})
        assert {'title', 'client_id', 'budget', 'notes'} <= set(errors)


@pytest.mark.unit
class TestInvoiceForm:
    """Tests for invoice form validation"""

    def test_valid_invoice(self, sample_invoice_data):
        assert validate_invoice_form(sample_invoice_data) == {}

    def test_total_required(self):
        errors = validate_invoice_form({'client_id': 7})
        assert errors['total'] == 'Total is required'

    def test_negative_total(self):
        assert 'total' in validate_invoice_form({'client_id': 7, 'total': -10})

    def test_due_before_issue(self):
        errors = validate_invoice_form({
            'client_id': 7, 'total': 100, 'issueDate': '2025-02-01', 'dueDate': '2025-01-01',
        })
        assert errors['due_date'] == 'Due date must be on or after the issue date'

    def test_bad_project_reference(self):
        errors = validate_invoice_form({'client_id': 7, 'total': 100, 'projectId': 'abc'})
        assert 'project_id' in errors


@pytest.mark.unit
class TestUpdateValidation:
    """Tests for validating partial updates against the stored record"""

    STORED_INVOICE = {
        'Id': 4, 'clientId': 7, 'total': 500, 'issueDate': '2025-06-01', 'dueDate': '2025-01-01',
    }

    def test_untouched_dates_are_not_rechecked(self):
        assert validate_update('invoice', self.STORED_INVOICE, {'notes': 'call first'}) == {}

    def test_changed_due_date_is_checked(self):
        errors = validate_update('invoice', self.STORED_INVOICE, {'dueDate': '2025-05-01'})
        assert errors['due_date'] == 'Due date must be on or after the issue date'

    def test_changed_issue_date_is_checked(self):
        errors = validate_update('invoice', self.STORED_INVOICE, {'issue_date': '2025-03-01'})
        assert 'due_date' in errors

    def test_other_fields_still_validated(self):
        errors = validate_update('invoice', self.STORED_INVOICE, {'total': -1})
        assert 'total' in errors
        assert 'due_date' not in errors

    def test_project_dates(self):
        stored = {'title': 'Patio', 'clientId': 1, 'startDate': '2025-05-01', 'endDate': '2025-06-01'}
        assert validate_update('project', stored, {'title': 'Patio and steps'}) == {}
        assert 'end_date' in validate_update('project', stored, {'endDate': '2025-04-01'})


@pytest.mark.unit
class TestProposalForm:
    """Tests for proposal form validation"""

    def test_valid_proposal(self):
        assert validate_proposal_form({'title': 'Terrace beds', 'client_id': 3, 'total': 4200}) == {}

    def test_invalid_valid_until(self):
        errors = validate_proposal_form({'title': 'Terrace beds', 'client_id': 3, 'validUntil': 'someday'})
        assert errors['valid_until'] == 'Invalid date format'

    def test_short_title(self):
        assert 'title' in validate_proposal_form({'title': 'ab', 'client_id': 3})


@pytest.mark.unit
class TestClientForm:
    """Tests for client form validation"""

    def test_valid_client(self, sample_client_data):
        assert validate_client_form(sample_client_data) == {}

    def test_name_and_email_required(self):
        errors = validate_client_form({})
        assert 'Name' in errors
        assert 'email' in errors

    def test_invalid_email_and_phone(self):
        errors = validate_client_form({'Name': 'Ana Ruiz', 'email': 'ana@', 'phone': '12'})
        assert 'email' in errors
        assert 'phone' in errors


@pytest.mark.unit
class TestAppointmentForm:
    """Tests for appointment form validation"""

    def test_valid_appointment(self, sample_appointment_data):
        assert validate_appointment_form(sample_appointment_data) == {}

    def test_date_required(self, sample_appointment_data):
        del sample_appointment_data['date']
        assert validate_appointment_form(sample_appointment_data)['date'] == 'Appointment date is required'

    def test_invalid_date(self, sample_appointment_data):
        sample_appointment_data['date'] = 'tomorrow'
        assert validate_appointment_form(sample_appointment_data)['date'] == 'Invalid date format'

    @pytest.mark.parametrize('duration', [0, -30, 'long', 1441])
    def test_invalid_duration(self, sample_appointment_data, duration):
        sample_appointment_data['duration'] = duration
        assert 'duration' in validate_appointment_form(sample_appointment_data)


@pytest.mark.unit
class TestFormDispatch:
    """Tests for validate_form and the guard around form validators"""

    def test_dispatch_by_kind(self):
        assert 'title' in validate_form('project', {'title': 'ab', 'client_id': 1})
        assert 'email' in validate_form('client', {'Name': 'Ana Ruiz'})

    def test_non_dict_input(self):
        errors = validate_form('invoice', None)
        assert 'general' in errors

    def test_unexpected_errors_are_captured(self):
        """A value whose str() raises must not escape as an exception"""
        class Exploding:
            def __str__(self):
                raise RuntimeError('boom')

        errors = validate_form('project', {'title': 'Patio', 'client_id': 1, 'budget': Exploding()})
        assert isinstance(errors, dict)


@pytest.mark.unit
class TestResponseFormatting:
    """Tests for response formatting"""

    def test_format_success_response(self):
        result = format_success_response({'Id': 1}, 'Created')
        assert result == {'success': True, 'message': 'Created', 'data': {'Id': 1}}
