# app/core/exceptions.py

class BaseAppException(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str = "App exception"):
        super().__init__(message)

# ==== Validation ====

class ValidationError(BaseAppException):
    """Generic validation error."""
    def __init__(self, message: str = "Validation error"):
        super().__init__(message)

class SubjectValidationError(ValidationError):
    """Subject validation error."""
    def __init__(self, message: str = "Subject validation error"):
        super().__init__(message)

class AchievementValidationError(ValidationError):
    """Achievement validation error."""
    def __init__(self, message: str = "Achievement validation error"):
        super().__init__(message)

class ProfileValidationError(ValidationError):
    """Profile validation error."""
    def __init__(self, message: str = "Profile validation error"):
        super().__init__(message)

class UserValidationError(ValidationError):
    """User validation error."""
    def __init__(self, message: str = "User validation error"):
        super().__init__(message)

# ==== NotFound ====

class NotFoundError(BaseAppException):
    """Requested resource does not exist."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)

class SubjectNotFound(NotFoundError):
    def __init__(self, message: str = "Subject not found"):
        super().__init__(message)

class AchievementNotFound(NotFoundError):
    def __init__(self, message: str = "Achievement not found"):
        super().__init__(message)

class ProfileNotFound(NotFoundError):
    def __init__(self, message: str = "Profile not found"):
        super().__init__(message)

class UserNotFound(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)

class StoredFileNotFound(NotFoundError):
    def __init__(self, message: str = "File not found"):
        super().__init__(message)

# ==== Conflicts ====

class ConflictError(BaseAppException):
    """Resource conflicts with existing data."""
    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message)

class DuplicateUser(ConflictError):
    """A user with this username or email already exists."""
    def __init__(self, message: str = "User already registered"):
        super().__init__(message)

class DuplicateProfile(ConflictError):
    def __init__(self, message: str = "Profile already exists"):
        super().__init__(message)

class SubjectInUse(ConflictError):
    """Subject still has achievements attached and cannot be deleted."""
    def __init__(self, message: str = "Subject has related achievements"):
        super().__init__(message)

# ==== Auth ====

class AuthError(BaseAppException):
    """Authentication or authorization error."""
    def __init__(self, message: str = "Authentication or authorization error"):
        super().__init__(message)

# ==== Storage ====

class StorageError(BaseAppException):
    """Object storage operation failed."""
    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message)

class FileTooLarge(StorageError):
    def __init__(self, message: str = "File size exceeds limit"):
        super().__init__(message)

# ==== Transport (client side) ====

class ServiceUnavailable(BaseAppException):
    """The remote service could not be reached."""
    def __init__(self, message: str = "Service unavailable, please try again later"):
        super().__init__(message)
