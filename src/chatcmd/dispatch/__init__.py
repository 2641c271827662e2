"""Runtime dispatch of incoming lines to command handlers."""

from chatcmd.dispatch.dispatcher import Dispatcher
from chatcmd.dispatch.result import DispatchError, DispatchResult, DispatchStatus

__all__ = ["DispatchError", "DispatchResult", "DispatchStatus", "Dispatcher"]
