"""
Typed exception hierarchy for the recurring order engine.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable), and carries its context as
attributes rather than only in the message string.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    OrdersKernelError (base)
    |
    +-- TemplateError
    |   +-- TemplateNotFoundError
    |   +-- EmptyLineSetError
    |   +-- InvalidStateTransitionError
    |   +-- TemplateCancelledError
    |   +-- ImmutableFieldError
    |   +-- InvalidTemplateLineError
    |   +-- CorruptTemplateError
    |
    +-- MaterializationError
    |   +-- CarrierExportError
    |   +-- DocumentRenderError
    |       +-- DocumentRenderTimeoutError
    |
    +-- ConfigError
        +-- InvalidConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Template        | TEMPLATE_NOT_FOUND          | Template ID doesn't exist
                | EMPTY_LINE_SET              | No line with quantity > 0
                | INVALID_STATE_TRANSITION    | e.g. resume on an active template
                | TEMPLATE_CANCELLED          | Any mutation of a cancelled template
                | IMMUTABLE_FIELD             | Update touches id/status/last executed
                | INVALID_TEMPLATE_LINE       | Submitted line has an unreadable quantity/price
                | TEMPLATE_CORRUPT            | Stored row cannot be decoded
----------------|-----------------------------|-----------------------------------------
Materialization | CARRIER_EXPORT_FAILED       | Carrier row could not be built/written
                | DOCUMENT_RENDER_FAILED      | Document renderer raised
                | DOCUMENT_RENDER_TIMEOUT     | Document renderer exceeded its timeout
----------------|-----------------------------|-----------------------------------------
Config          | INVALID_CONFIG              | Config value out of range / malformed

===============================================================================
HANDLING PATTERNS
===============================================================================

Validation errors (TemplateError) surface synchronously to store callers.
Materialization side-effect errors are caught and logged inside the
materializer; they never roll back ledger rows already written.

    try:
        store.resume(template_id)
    except TemplateCancelledError as e:
        notify_operator(f"{e.template_id} is cancelled")
"""


class OrdersKernelError(Exception):
    """
    Base exception for all recurring order engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ORDERS_KERNEL_ERROR"


# Template-related exceptions


class TemplateError(OrdersKernelError):
    """Base exception for template store errors."""

    code: str = "TEMPLATE_ERROR"


class TemplateNotFoundError(TemplateError):
    """Recurring template not found."""

    code: str = "TEMPLATE_NOT_FOUND"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Recurring template not found: {template_id}")


class EmptyLineSetError(TemplateError):
    """Template has no line with a positive quantity."""

    code: str = "EMPTY_LINE_SET"

    def __init__(self, template_id: str | None = None):
        self.template_id = template_id
        target = f" for template {template_id}" if template_id else ""
        super().__init__(
            f"At least one line with quantity > 0 is required{target}"
        )


class InvalidStateTransitionError(TemplateError):
    """Requested status transition is not allowed from the current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, template_id: str, current_status: str, action: str):
        self.template_id = template_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} template {template_id} in status {current_status}"
        )


class TemplateCancelledError(TemplateError):
    """Cancelled templates are terminal and reject all mutations."""

    code: str = "TEMPLATE_CANCELLED"

    def __init__(self, template_id: str, action: str):
        self.template_id = template_id
        self.action = action
        super().__init__(
            f"Template {template_id} is cancelled; cannot {action}"
        )


class ImmutableFieldError(TemplateError):
    """Update attempted on a field that only the engine may change."""

    code: str = "IMMUTABLE_FIELD"

    def __init__(self, template_id: str, fields: list[str]):
        self.template_id = template_id
        self.fields = fields
        super().__init__(
            f"Fields cannot be updated on template {template_id}: "
            f"{', '.join(fields)}"
        )


class InvalidTemplateLineError(TemplateError):
    """Submitted line carries a quantity or price that is not a number."""

    code: str = "INVALID_TEMPLATE_LINE"

    def __init__(self, line_index: int, field: str, value: object):
        self.line_index = line_index
        self.field = field
        self.value = value
        super().__init__(
            f"Line {line_index}: {field} is not a valid number: {value!r}"
        )


class CorruptTemplateError(TemplateError):
    """Stored template row cannot be decoded into a template."""

    code: str = "TEMPLATE_CORRUPT"

    def __init__(self, template_id: str, reason: str):
        self.template_id = template_id
        self.reason = reason
        super().__init__(f"Template {template_id} cannot be loaded: {reason}")


# Materialization-related exceptions


class MaterializationError(OrdersKernelError):
    """Base exception for errors while materializing one execution."""

    code: str = "MATERIALIZATION_ERROR"


class CarrierExportError(MaterializationError):
    """Carrier export row could not be produced or appended."""

    code: str = "CARRIER_EXPORT_FAILED"

    def __init__(self, carrier: str, order_id: str, reason: str):
        self.carrier = carrier
        self.order_id = order_id
        self.reason = reason
        super().__init__(
            f"Carrier {carrier} export failed for order {order_id}: {reason}"
        )


class DocumentRenderError(MaterializationError):
    """Document renderer failed."""

    code: str = "DOCUMENT_RENDER_FAILED"

    def __init__(self, kind: str, order_id: str, reason: str):
        self.kind = kind
        self.order_id = order_id
        self.reason = reason
        super().__init__(
            f"Rendering {kind} for order {order_id} failed: {reason}"
        )


class DocumentRenderTimeoutError(DocumentRenderError):
    """Document renderer did not return within its timeout."""

    code: str = "DOCUMENT_RENDER_TIMEOUT"

    def __init__(self, kind: str, order_id: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            kind, order_id, f"no result within {timeout_seconds}s",
        )


# Configuration exceptions


class ConfigError(OrdersKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidConfigError(ConfigError):
    """Configuration value is missing, malformed or out of range."""

    code: str = "INVALID_CONFIG"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")
