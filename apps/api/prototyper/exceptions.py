"""
Exception hierarchy for the prompt lifecycle.

Every error carries a message and the HTTP status code the API maps it to.
Adapter errors (generation, compilation) are prompt-local: the lifecycle
engine turns them into a failed prompt. Store errors are tick-fatal.
"""

from __future__ import annotations


class PrototyperError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class PromptValidationError(PrototyperError):
    """Raised at intake when the prompt text is missing or blank."""

    def __init__(self, message: str = "Prompt text is required"):
        super().__init__(message=message, status_code=400)


class NotFoundError(PrototyperError):
    """Raised when a prompt does not exist for the calling owner."""

    def __init__(self, resource: str):
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
        )


class GenerationUnavailable(PrototyperError):
    """The generation service could not be reached or refused the request."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=503)


class GenerationNotConfigured(GenerationUnavailable):
    """No credential is configured for the generation service."""

    def __init__(self, message: str = "Generation service is not configured. Set OPENAI_API_KEY."):
        super().__init__(message)


class GenerationFailed(PrototyperError):
    """The generation service answered, but the output was unusable."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=502)


class CompilationFailed(PrototyperError):
    """The generated source could not be transformed into runnable JavaScript."""

    def __init__(self, reason: str):
        super().__init__(message=f"Compilation failed: {reason}", status_code=422)
        self.reason = reason


class StoreError(PrototyperError):
    """A persistence operation failed."""

    def __init__(self, operation: str, detail: str):
        super().__init__(
            message=f"Store operation '{operation}' failed: {detail}",
            status_code=500,
        )
        self.operation = operation
