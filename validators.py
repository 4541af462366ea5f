"""
Input Validation & Sanitization Utilities
Field-level form validation for every record kind. Validators collect every
problem into an error map keyed by field name instead of stopping at the first.
"""
import re
import logging
from functools import wraps
from typing import Dict, Any, List, Optional, Tuple

from normalizers import parse_date, resolve_alias, safe_string

logger = logging.getLogger(__name__)

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(r'^\+?1?\d{9,15}$')

# Form bounds
TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
NAME_MIN_LENGTH = 2
DESCRIPTION_MAX_LENGTH = 1000
NOTES_MAX_LENGTH = 500
MAX_AMOUNT = 10_000_000
MAX_DURATION_MINUTES = 24 * 60

STATUS_CHOICES = {
    'client': ('active', 'inactive', 'lead'),
    'project': ('planning', 'in-progress', 'completed', 'on-hold'),
    'invoice': ('draft', 'sent', 'paid', 'overdue'),
    'proposal': ('pending', 'accepted', 'rejected'),
    'appointment': ('scheduled', 'completed', 'cancelled'),
}


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Validate phone number format

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    # Remove common separators
    cleaned_phone = re.sub(r'[\s\-\(\)\.]', '', phone)

    if not PHONE_PATTERN.match(cleaned_phone):
        return False, "Invalid phone number format"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_number_range(value: float, min_value: Optional[float] = None, max_value: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, "Value must be a number"

    if min_value is not None and value < min_value:
        return False, f"Value too small (minimum {min_value})"

    if max_value is not None and value > max_value:
        return False, f"Value too large (maximum {max_value})"

    return True, None


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing null bytes, trimming and truncating

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        value = safe_string(value)

    sanitized = value.replace('\x00', '').strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def parse_number(value: Any) -> Optional[float]:
    """Strict float parse for form input; None when not a finite number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float('inf'), float('-inf')):
        return None
    return number


def parse_positive_int(value: Any) -> Optional[int]:
    """Parse an identifier reference; None unless it is a positive integer"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    number = parse_number(safe_string(value) if isinstance(value, str) else value)
    if number is None or number <= 0 or number != int(number):
        return None
    return int(number)


def _field(data: Dict[str, Any], *aliases: str) -> Any:
    return resolve_alias(data, aliases)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_title(errors: Dict[str, str], value: Any, label: str, key: str = 'title') -> None:
    title = safe_string(value)
    if not title:
        errors[key] = f"{label} title is required"
    elif len(title) < TITLE_MIN_LENGTH:
        errors[key] = f"{label} title must be at least {TITLE_MIN_LENGTH} characters"
    elif len(title) > TITLE_MAX_LENGTH:
        errors[key] = f"{label} title must be less than {TITLE_MAX_LENGTH} characters"


def _check_client_reference(errors: Dict[str, str], value: Any) -> None:
    if _is_blank(value):
        errors['client_id'] = "Client ID is required"
    elif parse_positive_int(value) is None:
        errors['client_id'] = "Client ID must be a valid positive number"


def _check_amount(errors: Dict[str, str], key: str, value: Any, label: str, required: bool = False) -> None:
    if _is_blank(value):
        if required:
            errors[key] = f"{label} is required"
        return
    amount = parse_number(value)
    if amount is None or amount < 0:
        errors[key] = f"{label} must be a valid positive number"
    elif amount >= MAX_AMOUNT:
        errors[key] = f"{label} must be less than ${MAX_AMOUNT:,}"


def _check_length(errors: Dict[str, str], key: str, value: Any, label: str, max_length: int) -> None:
    if len(safe_string(value)) > max_length:
        errors[key] = f"{label} must be less than {max_length} characters"


def _check_date_range(errors: Dict[str, str], start: Any, end: Any, end_key: str, message: str) -> None:
    if _is_blank(start) or _is_blank(end):
        return
    start_date, end_date = parse_date(start), parse_date(end)
    if start_date is None or end_date is None:
        errors[end_key] = "Invalid date format"
    elif start_date.replace(tzinfo=None) > end_date.replace(tzinfo=None):
        errors[end_key] = message


def _check_status(errors: Dict[str, str], kind: str, value: Any) -> None:
    if _is_blank(value):
        return
    choices = STATUS_CHOICES[kind]
    if safe_string(value) not in choices:
        errors['status'] = f"Invalid status. Must be one of: {', '.join(choices)}"


def _guarded(kind: str):
    """Run a form validator, capturing unexpected errors under 'general'"""
    def decorator(func):
        @wraps(func)
        def wrapper(data: Dict[str, Any]) -> Dict[str, str]:
            errors: Dict[str, str] = {}
            if not isinstance(data, dict):
                errors['general'] = f"{kind.capitalize()} form data is missing"
                return errors
            try:
                func(data, errors)
            except Exception as e:
                logger.error(f"Error during {kind} form validation: {e}", exc_info=True)
                errors['general'] = 'Form validation error occurred'
            return errors
        return wrapper
    return decorator


@_guarded('project')
def validate_project_form(data, errors):
    """Validate a project create/update form"""
    _check_title(errors, _field(data, 'title', 'Name', 'name'), 'Project')
    _check_client_reference(errors, _field(data, 'client_id', 'clientId'))
    _check_length(errors, 'description', data.get('description'), 'Description', DESCRIPTION_MAX_LENGTH)
    _check_amount(errors, 'budget', data.get('budget'), 'Budget')
    _check_date_range(
        errors,
        _field(data, 'start_date', 'startDate'),
        _field(data, 'end_date', 'endDate'),
        'end_date', "End date must be after start date"
    )
    _check_length(errors, 'notes', data.get('notes'), 'Notes', NOTES_MAX_LENGTH)
    _check_status(errors, 'project', data.get('status'))


@_guarded('invoice')
def validate_invoice_form(data, errors):
    """Validate an invoice create/update form"""
    _check_client_reference(errors, _field(data, 'client_id', 'clientId'))
    project_id = _field(data, 'project_id', 'projectId')
    if not _is_blank(project_id) and parse_positive_int(project_id) is None:
        errors['project_id'] = "Project ID must be a valid positive number"
    _check_amount(errors, 'total', data.get('total'), 'Total', required=True)
    _check_amount(errors, 'subtotal', data.get('subtotal'), 'Subtotal')
    _check_amount(errors, 'tax', data.get('tax'), 'Tax')
    _check_date_range(
        errors,
        _field(data, 'issue_date', 'issueDate'),
        _field(data, 'due_date', 'dueDate'),
        'due_date', "Due date must be on or after the issue date"
    )
    _check_length(errors, 'notes', data.get('notes'), 'Notes', NOTES_MAX_LENGTH)
    _check_status(errors, 'invoice', data.get('status'))


@_guarded('proposal')
def validate_proposal_form(data, errors):
    """Validate a proposal create/update form"""
    _check_title(errors, _field(data, 'title', 'Name', 'name'), 'Proposal')
    _check_client_reference(errors, _field(data, 'client_id', 'clientId'))
    _check_length(errors, 'description', data.get('description'), 'Description', DESCRIPTION_MAX_LENGTH)
    _check_amount(errors, 'total', data.get('total'), 'Total')
    valid_until = _field(data, 'valid_until', 'validUntil')
    if not _is_blank(valid_until) and parse_date(valid_until) is None:
        errors['valid_until'] = "Invalid date format"
    _check_length(errors, 'notes', data.get('notes'), 'Notes', NOTES_MAX_LENGTH)
    _check_status(errors, 'proposal', data.get('status'))


@_guarded('client')
def validate_client_form(data, errors):
    """Validate a client create/update form"""
    name = safe_string(_field(data, 'Name', 'name'))
    if not name:
        errors['Name'] = "Client name is required"
    else:
        is_valid, error = validate_string_length(name, NAME_MIN_LENGTH, TITLE_MAX_LENGTH)
        if not is_valid:
            errors['Name'] = f"Client name: {error}"

    email = safe_string(data.get('email'))
    if not email:
        errors['email'] = "Email is required"
    else:
        is_valid, error = validate_email(email)
        if not is_valid:
            errors['email'] = error

    phone = safe_string(data.get('phone'))
    if phone:
        is_valid, error = validate_phone(phone)
        if not is_valid:
            errors['phone'] = error

    _check_length(errors, 'notes', data.get('notes'), 'Notes', NOTES_MAX_LENGTH)
    _check_status(errors, 'client', data.get('status'))


@_guarded('appointment')
def validate_appointment_form(data, errors):
    """Validate an appointment create/update form"""
    _check_title(errors, _field(data, 'title', 'Name', 'name'), 'Appointment')
    _check_client_reference(errors, _field(data, 'client_id', 'clientId'))

    when = data.get('date')
    if _is_blank(when):
        errors['date'] = "Appointment date is required"
    elif parse_date(when) is None:
        errors['date'] = "Invalid date format"

    duration = data.get('duration')
    if not _is_blank(duration):
        minutes = parse_number(duration)
        if minutes is None or minutes <= 0:
            errors['duration'] = "Duration must be a positive number of minutes"
        else:
            is_valid, error = validate_number_range(minutes, max_value=MAX_DURATION_MINUTES)
            if not is_valid:
                errors['duration'] = f"Duration: {error}"

    _check_length(errors, 'notes', data.get('notes'), 'Notes', NOTES_MAX_LENGTH)
    _check_status(errors, 'appointment', data.get('status'))


FORM_VALIDATORS = {
    'client': validate_client_form,
    'project': validate_project_form,
    'invoice': validate_invoice_form,
    'proposal': validate_proposal_form,
    'appointment': validate_appointment_form,
}


def validate_form(kind: str, data: Dict[str, Any]) -> Dict[str, str]:
    """
    Validate form input for a record kind

    Returns:
        Error map keyed by field name; empty when the form is valid
    """
    return FORM_VALIDATORS[kind](data)


# Error key of each date-order check and the fields it reads
DATE_RANGE_FIELDS = {
    'project': ('end_date', ('start_date', 'startDate', 'end_date', 'endDate')),
    'invoice': ('due_date', ('issue_date', 'issueDate', 'due_date', 'dueDate')),
}


def validate_update(kind: str, current: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, str]:
    """
    Validate a partial update against the stored record

    The merged record is validated, except that the date order is only
    checked when the update touches one of its dates. An invoice created
    with a due date before its default issue date stays editable.

    Returns:
        Error map keyed by field name; empty when the update is valid
    """
    errors = validate_form(kind, {**current, **changes})
    date_range = DATE_RANGE_FIELDS.get(kind)
    if date_range:
        error_key, fields = date_range
        if not any(name in changes for name in fields):
            errors.pop(error_key, None)
    return errors


def format_success_response(data: Any, message: str = "Success") -> Dict[str, Any]:
    """
    Format success response for consistent API responses

    Args:
        data: Response data
        message: Success message

    Returns:
        Success response dictionary
    """
    return {
        'success': True,
        'message': message,
        'data': data
    }
