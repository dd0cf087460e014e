# /bealigned/workflows/errors.py

# Typed errors raised by the reflection engine. Everything else is handled
# inside the engine and reported through a well-formed TurnResult.


class ReflectionError(Exception):
    """Base class for reflection engine errors."""


class FlowStateValidationError(ReflectionError, ValueError):
    """A caller-supplied flow state or phase reference is malformed."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class GenerationError(ReflectionError):
    """The external text-generation capability failed or returned nothing usable."""
