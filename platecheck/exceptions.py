"""Exception hierarchy for platecheck.

Services raise these internally; the public operations catch them and
return an ``OperationResult`` carrying ``code`` and the message.
"""


class ErrorCode:
    DUPLICATE_EMAIL = "DuplicateEmail"
    INVALID_CREDENTIALS = "InvalidCredentials"
    INVALID_INPUT = "InvalidInput"
    DUPLICATE_PLATE = "DuplicatePlate"
    INVALID_YEAR = "InvalidYear"
    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    STORAGE_FAILURE = "StorageFailure"


class PlateCheckError(Exception):
    """Base exception for all platecheck errors."""

    code = "Error"
    default_message = "An error occurred"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(PlateCheckError):
    """Blank required field, malformed email, or too-short password."""

    code = ErrorCode.INVALID_INPUT
    default_message = "Please fill in all required fields"


# ── Identity ──────────────────────────────────────────────────────────────
class DuplicateEmailError(PlateCheckError):
    code = ErrorCode.DUPLICATE_EMAIL
    default_message = "Email already in use"


class InvalidCredentialsError(PlateCheckError):
    code = ErrorCode.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


# ── Vehicles ──────────────────────────────────────────────────────────────
class DuplicatePlateError(PlateCheckError):
    code = ErrorCode.DUPLICATE_PLATE
    default_message = "A vehicle with this plate number already exists"


class InvalidYearError(PlateCheckError):
    code = ErrorCode.INVALID_YEAR
    default_message = "Please enter a valid year"


class VehicleNotFoundError(PlateCheckError):
    code = ErrorCode.NOT_FOUND
    default_message = "Vehicle not found"


class InvalidTransitionError(PlateCheckError):
    """Status change requested on a vehicle that is no longer pending."""

    code = ErrorCode.INVALID_TRANSITION
    default_message = "Vehicle status can no longer be changed"


# ── Storage ───────────────────────────────────────────────────────────────
class StorageError(PlateCheckError):
    """Persistence read/write failed (I/O, corruption, serialization).

    The underlying exception, if any, is available as ``__cause__``.
    """

    code = ErrorCode.STORAGE_FAILURE
    default_message = "Storage operation failed"

    def __init__(self, message: str = None, *, key: str = ""):
        self.key = key
        super().__init__(message)
