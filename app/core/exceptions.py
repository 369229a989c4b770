"""
Custom exception classes for the Prompt Laboratory application.
These exceptions provide meaningful error messages and HTTP status codes.
"""


class PromptLabException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class PromptNotFoundException(PromptLabException):
    """Raised when a prompt is not found."""

    def __init__(self, prompt_id: int):
        super().__init__(
            message=f"Prompt not found: {prompt_id}",
            status_code=404
        )
        self.prompt_id = prompt_id


class DeletedPromptNotFoundException(PromptLabException):
    """Raised when a trash entry is not found."""

    def __init__(self, deleted_prompt_id: int):
        super().__init__(
            message=f"Deleted prompt not found: {deleted_prompt_id}",
            status_code=404
        )
        self.deleted_prompt_id = deleted_prompt_id


class SettingNotFoundException(PromptLabException):
    """Raised when a setting key has no value."""

    def __init__(self, key: str):
        super().__init__(
            message=f"Setting not found: {key}",
            status_code=404
        )
        self.key = key


class AuthenticationException(PromptLabException):
    """Raised when a request is not authenticated or credentials are wrong."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=401
        )


class ValidationException(PromptLabException):
    """Raised when request data validation fails."""

    def __init__(self, message: str):
        super().__init__(
            message=f"Validation error: {message}",
            status_code=400  # Bad Request
        )


class ConflictException(PromptLabException):
    """Raised when a resource already exists."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=409  # Conflict
        )


class PromptCreationException(PromptLabException):
    """Raised when a prompt cannot be created in the storage backend."""

    def __init__(self, backend: str, error: str):
        super().__init__(
            message=f"Failed to create prompt in {backend}: {error}",
            status_code=500
        )
        self.backend = backend
        self.error = error


class StorageBackendException(PromptLabException):
    """Raised when the remote storage backend cannot be reached or configured."""

    def __init__(self, backend: str, error: str):
        super().__init__(
            message=f"Storage backend '{backend}' error: {error}",
            status_code=502  # Bad Gateway
        )
        self.backend = backend
        self.error = error
