"""
Payload validation for queued writes.

Each known table has a pydantic model describing the columns a client may
write. Payloads are validated when they are enqueued, so a malformed payload
is rejected while the user is still looking at the form instead of failing
silently on replay hours later.
"""

import datetime
import json
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Operation names as persisted on QueuedOperation.operation
_OPERATIONS = ("create", "update", "delete")

# Client-side markers that must never reach the remote store
_CLIENT_MARKERS = ('_offline',)


class PayloadValidationError(ValueError):
    """Queued write payload does not match its table schema."""
    pass


class TablePayload(BaseModel):
    """Base for per-table payloads. Unknown columns are rejected."""

    model_config = ConfigDict(extra='forbid')

    required_on_create: ClassVar[tuple[str, ...]] = ()

    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    status: Optional[str] = None


class ClientPayload(TablePayload):
    required_on_create = ('name',)

    name: Optional[str] = Field(default=None, min_length=1)
    client_type: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    cnic: Optional[str] = None
    region: Optional[str] = None


class CasePayload(TablePayload):
    required_on_create = ('title', 'client_id')

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    client_id: Optional[str] = None


class InvoicePayload(TablePayload):
    required_on_create = ('amount', 'client_id')

    invoice_id: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    client_id: Optional[str] = None
    case_id: Optional[str] = None
    due_date: Optional[datetime.date] = None
    payment_id: Optional[str] = None


class ExpensePayload(TablePayload):
    required_on_create = ('title', 'amount', 'date')

    title: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = Field(default=None, ge=0)
    date: Optional[datetime.date] = None
    category: Optional[str] = None
    expense_type: Optional[str] = None
    receipt_path: Optional[str] = None


class AppointmentPayload(TablePayload):
    required_on_create = ('date', 'time', 'topic')

    date: Optional[datetime.date] = None
    time: Optional[str] = Field(default=None, pattern=r'^\d{2}:\d{2}(:\d{2})?$')
    topic: Optional[str] = Field(default=None, min_length=1)
    duration: Optional[int] = Field(default=None, ge=0)
    type: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[str] = None
    platform: Optional[str] = None


PAYLOAD_SCHEMAS: dict[str, type[TablePayload]] = {
    'clients': ClientPayload,
    'cases': CasePayload,
    'invoices': InvoicePayload,
    'expenses': ExpensePayload,
    'appointments': AppointmentPayload,
}


def _format_errors(table: str, error: ValidationError) -> str:
    errors = []
    for detail in error.errors():
        field = '.'.join(str(loc) for loc in detail['loc'])
        errors.append(f"{field}: {detail['msg']}")
    return f"Invalid {table} payload: " + '; '.join(errors)


def validate_payload(
    table: str,
    operation,
    data: Optional[dict],
    strict_tables: bool = False,
) -> dict[str, Any]:
    """
    Validate and normalise a write payload.

    Args:
        table: Remote table name
        operation: create, update or delete
        data: Raw payload from the caller
        strict_tables: Reject tables without a registered schema

    Returns:
        JSON-safe payload ready to persist and send. Always {} for delete.

    Raises:
        PayloadValidationError: Payload is malformed for its table/operation

    Example:
        >>> validate_payload('clients', 'create', {'name': 'Acme'})
        {'name': 'Acme'}
    """
    if not table or not isinstance(table, str):
        raise PayloadValidationError(f"Invalid table name: {table!r}")

    # Accepts the OperationType enum or its plain string value
    operation = getattr(operation, 'value', operation)
    if operation not in _OPERATIONS:
        raise PayloadValidationError(f"Unknown operation: {operation!r}")

    if operation == 'delete':
        return {}

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PayloadValidationError(f"Payload must be a mapping, got {type(data).__name__}")

    payload = {k: v for k, v in data.items() if k not in _CLIENT_MARKERS}
    if operation == 'update':
        payload.pop('id', None)

    schema = PAYLOAD_SCHEMAS.get(table)
    if schema is None:
        if strict_tables:
            raise PayloadValidationError(f"No payload schema registered for table '{table}'")
        return _validate_generic(table, payload)

    try:
        model = schema.model_validate(payload)
    except ValidationError as e:
        raise PayloadValidationError(_format_errors(table, e)) from e

    normalised = model.model_dump(mode='json', exclude_unset=True)

    if operation == 'create':
        missing = [f for f in schema.required_on_create if normalised.get(f) is None]
        if missing:
            raise PayloadValidationError(
                f"Invalid {table} payload: missing required field(s) {', '.join(missing)}"
            )
    elif not normalised:
        raise PayloadValidationError(f"Invalid {table} payload: update has no fields")

    return normalised


def _validate_generic(table: str, payload: dict) -> dict[str, Any]:
    """Accept any JSON-serialisable mapping with string keys."""
    if not all(isinstance(k, str) for k in payload):
        raise PayloadValidationError(f"Invalid {table} payload: field names must be strings")
    try:
        json.dumps(payload)
    except (TypeError, ValueError) as e:
        raise PayloadValidationError(f"Invalid {table} payload: {e}") from e
    return payload


__all__ = [
    'PAYLOAD_SCHEMAS',
    'PayloadValidationError',
    'TablePayload',
    'validate_payload',
]
