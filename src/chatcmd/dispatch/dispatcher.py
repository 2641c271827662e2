"""Dispatcher — turns one incoming line into one handler call.

Steps for each line:

1. Strip a leading bot mention, then require the command prefix.
2. Look the first token up in the namespace matching the message source.
3. Enforce the command's mention requirement and capability.
4. Convert the remaining tokens parameter by parameter, advancing a
   shared cursor; missing input falls back to defaults or the usage line.
5. Call the handler and deliver its result through the transport.

Unknown commands and lines without the prefix are ignored silently. User
errors become replies. Handler failures are logged and reported to the
reply target; they never escape :meth:`Dispatcher.handle`.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from chatcmd.commands.registry import CommandRegistry
from chatcmd.commands.spec import CommandSpec
from chatcmd.config.logging import dispatch_log_context
from chatcmd.conversion.registry import ConversionRegistry
from chatcmd.conversion.tokens import TokenCursor, tokenize
from chatcmd.dispatch.result import DispatchError, DispatchResult, DispatchStatus
from chatcmd.domain.errors import DeserializationError
from chatcmd.domain.output import OutputKind, Reaction, output_kind
from chatcmd.domain.types import MentionSetting, ReplyTarget
from chatcmd.transport.base import Transport

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "!"
ERROR_DETAIL_FRAMES = 5

_SOURCE_REPLIES = frozenset({ReplyTarget.SOURCE, ReplyTarget.REACTION, ReplyTarget.NONE})


def usage_message(spec: CommandSpec) -> str:
    if spec.usage:
        return f"Usage: {spec.usage}"
    return "Not enough parameters (no usage string provided)"


def error_details(exc: BaseException) -> str:
    """Reply text for a failed handler: the exception and its innermost frames."""
    frames = traceback.extract_tb(exc.__traceback__)[-ERROR_DETAIL_FRAMES:]
    lines = [f"{type(exc).__name__}: {exc}"]
    lines.extend(
        f"    at {frame.name} ({frame.filename}:{frame.lineno})" for frame in reversed(frames)
    )
    return "An error occurred. Have some details:\n" + "\n".join(lines)


class Dispatcher:
    """Parses lines and runs the matching command handlers.

    Args:
        commands: Where command names are looked up.
        conversions: Converters for parameters and results.
        transport: Delivers replies and reactions.
        prefix: Text every command line must start with (after an
            optional mention).
        mention_setting: Reader-wide mention requirement, inherited by
            commands declaring ``MentionSetting.DEFAULT``.
    """

    def __init__(
        self,
        commands: CommandRegistry,
        conversions: ConversionRegistry,
        transport: Transport,
        *,
        prefix: str = DEFAULT_PREFIX,
        mention_setting: MentionSetting = MentionSetting.NO,
    ) -> None:
        self.commands = commands
        self.conversions = conversions
        self.transport = transport
        self.prefix = prefix
        self.mention_setting = mention_setting

    @property
    def prefix(self) -> str:
        return self._prefix

    @prefix.setter
    def prefix(self, value: str) -> None:
        if not value or value != value.strip():
            msg = f"The command prefix must be non-empty without surrounding spaces: {value!r}"
            raise ValueError(msg)
        self._prefix = value

    @property
    def mention_setting(self) -> MentionSetting:
        return self._mention_setting

    @mention_setting.setter
    def mention_setting(self, value: MentionSetting | str) -> None:
        setting = MentionSetting(value)
        self._mention_setting = MentionSetting.NO if setting is MentionSetting.DEFAULT else setting

    def effective_mention_setting(self, spec: CommandSpec) -> MentionSetting:
        """The mention requirement that applies to *spec*: PREFIX or NO."""
        if spec.mentions is MentionSetting.DEFAULT:
            return self.mention_setting
        return spec.mentions

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, context: Any) -> DispatchResult:
        """Dispatch the line carried by *context*.

        Raises:
            InvalidRestrictionError: A parameter's restriction is malformed.
            InvalidDeserializerError: A converter broke its contract.
        """
        with dispatch_log_context(context):
            return self._handle(context)

    def _handle(self, context: Any) -> DispatchResult:
        text, pre_mention = self._strip_mention(context.text.strip())
        if not text.startswith(self.prefix):
            return DispatchResult.ignored()
        cursor = TokenCursor(tokenize(text[len(self.prefix) :]))
        if cursor.exhausted:
            return DispatchResult.ignored()

        name = cursor.pop().lower()
        spec = self.commands.lookup(name, private=context.is_private)
        if spec is None:
            logger.debug("Ignoring unknown command %r", name)
            return DispatchResult.ignored()
        if self.effective_mention_setting(spec) is MentionSetting.PREFIX and not pre_mention:
            logger.debug("Ignoring %s: the bot was not mentioned", spec.name)
            return DispatchResult.ignored()

        target = self._resolve_target(context, spec)
        capability = spec.required_capability
        if capability and not self.transport.has_capability(context, capability):
            message = (
                f"You can't use this command because you don't have the {capability} permission."
            )
            return self._fail(spec, target, DispatchStatus.DENIED, message)

        args: list[Any] = []
        for index, parameter in enumerate(spec.parameters):
            from_default = cursor.exhausted
            if from_default:
                tokens = parameter.default_tokens
                if tokens is None:
                    return self._fail(spec, target, DispatchStatus.USAGE, usage_message(spec))
            else:
                tokens = cursor.remaining
            try:
                value, consumed = self.conversions.deserialize(
                    parameter.type_tag,
                    tokens,
                    parameter.combine_count,
                    parameter.restriction,
                    context,
                )
            except DeserializationError as exc:
                message = f"Parameter {index + 1} is invalid: {exc.message}"
                if exc.show_usage and spec.usage:
                    message = f"{message}\n{usage_message(spec)}"
                return self._fail(spec, target, DispatchStatus.INVALID, message)
            if not from_default:
                cursor.advance(consumed)
            args.append(value)

        if spec.returns_value:
            call_args = [context, *args]
        else:
            call_args = [context, target, *args]
        try:
            result = spec.handler(*call_args)
            outputs = self._deliver(context, spec, target, result)
        except Exception as exc:
            logger.error("Command %s failed", spec.name, exc_info=exc)
            return self._fail(spec, target, DispatchStatus.ERROR, error_details(exc))
        return DispatchResult(
            ok=True, status=DispatchStatus.OK, command=spec.name, outputs=outputs
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _strip_mention(self, text: str) -> tuple[str, bool]:
        for mention in self.transport.mentions():
            if mention and text.startswith(mention):
                return text[len(mention) :].lstrip(), True
        return text, False

    def _resolve_target(self, context: Any, spec: CommandSpec) -> Any:
        reply = ReplyTarget.SOURCE if spec.reply in _SOURCE_REPLIES else spec.reply
        target = self.transport.reply_target(context, reply, spec.reply_other)
        if target is None and reply is not ReplyTarget.SOURCE:
            logger.debug("Reply target %s unavailable for %s; using source", reply, spec.name)
            target = self.transport.reply_target(context, ReplyTarget.SOURCE, None)
        return target

    def _deliver(self, context: Any, spec: CommandSpec, target: Any, result: Any) -> list[Any]:
        if result is None or spec.reply is ReplyTarget.NONE:
            return []
        output = result
        if output_kind(output) is None:
            output = self.conversions.serialize(result, spec.returns, context)
        if spec.reply is ReplyTarget.REACTION and isinstance(output, str):
            output = Reaction(emoji=output)
        if output_kind(output) is OutputKind.REACTION:
            self.transport.react(context, output)
        else:
            self.transport.send(target, output)
        return [output]

    def _fail(
        self, spec: CommandSpec, target: Any, status: DispatchStatus, message: str
    ) -> DispatchResult:
        if target is None:
            logger.warning("No reply target for %s; dropping %r", spec.name, message)
            outputs: list[Any] = []
        else:
            self.transport.send(target, message)
            outputs = [message]
        return DispatchResult(
            ok=False,
            status=status,
            command=spec.name,
            outputs=outputs,
            error=DispatchError(code=status.value, message=message),
        )
