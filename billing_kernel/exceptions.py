"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, CLI tools, batch jobs) must react to billing errors
by type, never by parsing messages:

    try:
        back_office.set_invoice_status(invoice_id, "VALIDATED")
    except IllegalTransitionError as e:
        api_response(code=e.code, current=e.from_status, requested=e.to_status)

Every exception:
  1. Has a CODE class attribute (machine-readable, API-safe)
  2. Carries structured DATA as attributes (not just a message string)
  3. Renders itself for presentation via ``to_dict()``

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingKernelError (base)
    |
    +-- NotFoundError
    |   +-- DocumentNotFoundError
    |   +-- ClientNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidLineInputError
    |   +-- InvalidCurrencyError
    |   +-- InvalidDocumentNumberError
    |
    +-- LifecycleError
    |   +-- IllegalTransitionError
    |   +-- UnknownStatusError
    |   +-- InvalidConversionStateError
    |   +-- DeletionForbiddenError
    |
    +-- ConflictingUniqueFieldError
    |
    +-- ConcurrencyError
        +-- PersistenceConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|---------------------------------------
Not found    | DOCUMENT_NOT_FOUND         | Quote / invoice id doesn't resolve
             | CLIENT_NOT_FOUND           | Client id doesn't resolve
-------------|----------------------------|---------------------------------------
Validation   | INVALID_LINE_INPUT         | Bad quantity / price / VAT / designation
             | INVALID_CURRENCY           | Not a valid ISO 4217 code
             | INVALID_DOCUMENT_NUMBER    | Malformed "{YYYY}-{K}{NNNNN}" string
-------------|----------------------------|---------------------------------------
Lifecycle    | ILLEGAL_TRANSITION         | Status edge not in the state machine
             | UNKNOWN_STATUS             | Status name doesn't exist for the kind
             | INVALID_CONVERSION_STATE   | Converting a quote that isn't ACCEPTED
             | DELETION_FORBIDDEN         | Deleting a numbered / non-draft invoice
-------------|----------------------------|---------------------------------------
Uniqueness   | CONFLICTING_UNIQUE_FIELD   | Duplicate unique client attribute
-------------|----------------------------|---------------------------------------
Concurrency  | PERSISTENCE_CONFLICT       | Store aborted the transaction (retry)

===============================================================================
RETRY POLICY
===============================================================================

Only ``PersistenceConflictError`` is retryable (``retryable = True``).
Finalize and convert are idempotent and can be retried blindly; a status
update must be re-checked against the current state before retrying.

===============================================================================
"""

from typing import Any


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"
    retryable: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Structured, user-presentable representation of the error."""
        payload: dict[str, Any] = {"code": self.code, "message": str(self)}
        for key, value in vars(self).items():
            if not key.startswith("_"):
                payload[key] = str(value) if value is not None else None
        return payload


# Not-found exceptions


class NotFoundError(BillingKernelError):
    """Base exception for identifiers that do not resolve."""

    code: str = "NOT_FOUND"


class DocumentNotFoundError(NotFoundError):
    """Quote or invoice with given ID was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_kind: str, document_id: str):
        self.document_kind = document_kind
        self.document_id = document_id
        super().__init__(f"{document_kind.capitalize()} not found: {document_id}")


class ClientNotFoundError(NotFoundError):
    """Client with given ID was not found."""

    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


# Validation exceptions


class ValidationError(BillingKernelError):
    """Base exception for rejected input, raised before any mutation."""

    code: str = "VALIDATION_ERROR"


class InvalidLineInputError(ValidationError):
    """A line item has a malformed quantity, unit price, VAT rate or designation."""

    code: str = "INVALID_LINE_INPUT"

    def __init__(self, field: str, value: Any, reason: str, line_index: int | None = None):
        self.field = field
        self.value = value
        self.reason = reason
        self.line_index = line_index
        where = f" (line {line_index})" if line_index is not None else ""
        super().__init__(f"Invalid {field}{where}: {reason} (got {value!r})")


class InvalidCurrencyError(ValidationError):
    """Currency code is not a valid ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class InvalidDocumentNumberError(ValidationError):
    """Document number components or string do not match the canonical format."""

    code: str = "INVALID_DOCUMENT_NUMBER"

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid document number {value!r}: {reason}")


# Lifecycle exceptions


class LifecycleError(BillingKernelError):
    """Base exception for document lifecycle violations."""

    code: str = "LIFECYCLE_ERROR"


class IllegalTransitionError(LifecycleError):
    """Requested status change is not an edge of the document's state machine."""

    code: str = "ILLEGAL_TRANSITION"

    def __init__(self, document_kind: str, from_status: str, to_status: str):
        self.document_kind = document_kind
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Illegal {document_kind} transition: {from_status} -> {to_status}"
        )


class UnknownStatusError(LifecycleError):
    """Status name does not exist for the document kind."""

    code: str = "UNKNOWN_STATUS"

    def __init__(self, document_kind: str, status: str):
        self.document_kind = document_kind
        self.status = status
        super().__init__(f"Unknown {document_kind} status: {status!r}")


class InvalidConversionStateError(LifecycleError):
    """Quote cannot be converted because it is not ACCEPTED."""

    code: str = "INVALID_CONVERSION_STATE"

    def __init__(self, quote_id: str, status: str):
        self.quote_id = quote_id
        self.status = status
        super().__init__(
            f"Quote {quote_id} must be ACCEPTED to be converted (status is {status})"
        )


class DeletionForbiddenError(LifecycleError):
    """Invoice cannot be deleted in its current state; cancel it instead."""

    code: str = "DELETION_FORBIDDEN"

    def __init__(self, invoice_id: str, reason: str):
        self.invoice_id = invoice_id
        self.reason = reason
        super().__init__(f"Invoice {invoice_id} cannot be deleted: {reason}")


# Uniqueness


class ConflictingUniqueFieldError(BillingKernelError):
    """A unique attribute (e.g. client email) is already in use."""

    code: str = "CONFLICTING_UNIQUE_FIELD"

    def __init__(self, entity_type: str, field: str, value: str | None = None):
        self.entity_type = entity_type
        self.field = field
        self.value = value
        super().__init__(f"Conflict: {entity_type}.{field} already in use")


# Concurrency


class ConcurrencyError(BillingKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class PersistenceConflictError(ConcurrencyError):
    """
    The store aborted the transaction (lock timeout, deadlock, serialization
    failure). Nothing was committed; idempotent calls are safe to retry.
    """

    code: str = "PERSISTENCE_CONFLICT"
    retryable: bool = True

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Transaction aborted during {operation}: {detail}")
