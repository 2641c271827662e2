"""Transport protocol and the console transport."""

from chatcmd.transport.base import MessageContext, Transport
from chatcmd.transport.console import ConsoleContext, ConsoleTransport

__all__ = ["ConsoleContext", "ConsoleTransport", "MessageContext", "Transport"]
