"""
Exception hierarchy for the account ledger.

Services raise these; the API layer maps each family onto an HTTP status
(see account_ledger.api.errors). Storage failures are always wrapped in
StorageError so that driver exceptions never leak through to callers.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for all ledger operations."""
    pass


# ─── Not found ────────────────────────────────────────────────

class NotFoundError(LedgerError):
    """
    Entity not found.

    Attributes:
        entity_type: Type of entity (e.g., 'User', 'Package')
        entity_id: Identifier that was looked up
    """
    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found")


class UserNotFoundError(NotFoundError):
    def __init__(self, pubkey: str):
        super().__init__("User", pubkey)
        self.pubkey = pubkey


class PackageNotFoundError(NotFoundError):
    def __init__(self, package_id: int):
        super().__init__("Package", package_id)
        self.package_id = package_id


# ─── Client input ─────────────────────────────────────────────

class InvalidInputError(LedgerError):
    """Malformed client input."""
    pass


class InvalidMethodKeywordError(InvalidInputError):
    """
    Subscription keyword is neither subscribe<Name> nor unsubscribe<Name>.

    Attributes:
        method: The rejected keyword
    """
    def __init__(self, method: str):
        self.method = method
        super().__init__(
            f"Invalid subscription method '{method}': "
            f"expected 'subscribe<Name>' or 'unsubscribe<Name>'"
        )


class InvalidAmountError(InvalidInputError):
    """
    Invalid credit amount specified.

    Attributes:
        amount: The invalid amount
    """
    def __init__(self, amount: Any, reason: Optional[str] = None):
        self.amount = amount
        self.reason = reason
        message = f"Invalid credit amount: {amount}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


# ─── Credits ──────────────────────────────────────────────────

class InsufficientCreditsError(LedgerError):
    """
    User does not have enough credits for an operation.

    Attributes:
        user_id: Internal user id
        required: Credits required
        available: Credits available
    """
    def __init__(self, user_id: int, required: int, available: int):
        self.user_id = user_id
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credits: need {required}, have {available}"
        )


# ─── Storage ──────────────────────────────────────────────────

class StorageError(LedgerError):
    """
    Persistence failure. The message stays short; the driver exception is
    chained as __cause__ for logging.

    Attributes:
        operation: What was being attempted (e.g. 'query user')
    """
    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        super().__init__(message or f"Failed to {operation}")


class ConcurrentUpdateError(StorageError):
    """Compare-and-swap lost the race too many times."""
    def __init__(self, operation: str, attempts: int):
        self.attempts = attempts
        super().__init__(
            operation,
            f"Failed to {operation}: concurrent modification, gave up after {attempts} attempts",
        )
