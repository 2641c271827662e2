"""Error taxonomy.

Registration errors abort the offending registration and reach the
integrator. Runtime user errors (``DeserializationError``) are caught by the
dispatcher and turned into a reply. ``InvalidRestrictionError`` is a
programmer error in a command definition and propagates like a
registration error, but only once the restriction is first evaluated.
"""

from __future__ import annotations


class ChatcmdError(Exception):
    """Root of all chatcmd errors."""


# --- Registration -----------------------------------------------------------


class RegistrationError(ChatcmdError):
    """A command or converter could not be registered."""


class InvalidCommandMethodError(RegistrationError):
    """A command definition is structurally invalid."""


class InvalidDeserializerError(RegistrationError):
    """A deserializer violates the deserializer contract."""


class InvalidSerializerError(RegistrationError):
    """A serializer violates the serializer contract."""


class NameConflictError(RegistrationError):
    """A command's primary name is already bound in a required namespace."""

    def __init__(self, name: str, taken_by: str) -> None:
        self.name = name
        self.taken_by = taken_by
        super().__init__(f"The command name {name} is already taken by command {taken_by}")


# --- Runtime ----------------------------------------------------------------


class InvalidRestrictionError(ChatcmdError):
    """A restriction expression is malformed or unusable for its parameter."""


class DeserializationError(ChatcmdError):
    """User input could not be converted to a parameter value.

    Attributes:
        show_usage: True when the value parsed but failed validation, so the
            command's usage line helps the user; False when the input was
            merely malformed.
    """

    def __init__(self, message: str, *, show_usage: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.show_usage = show_usage


class SerializationError(ChatcmdError):
    """A handler result could not be converted to an output kind."""
