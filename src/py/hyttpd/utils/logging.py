import os
import sys
import time
from contextvars import ContextVar
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, NamedTuple

from ..config import LOG_LEVEL
from .primitives import TPrimitive

ERR = sys.stderr

# SEE: https://no-color.org/
NO_COLOR: bool = "NO_COLOR" in os.environ
FORCE_COLOR: bool = "FORCE_COLOR" in os.environ
COLOR: bool = FORCE_COLOR or NO_COLOR is False

# Format of the timestamp in access lines, local time
ACCESS_TIME_FORMAT: str = "%Y-%m-%d %H:%M:%S"

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="hyttpd")


class Term:
	BOLD: ClassVar[str] = "" if NO_COLOR else "\033[1m"
	NORMAL: ClassVar[str] = "" if NO_COLOR else "\033[0m"
	RESET: ClassVar[str] = "" if NO_COLOR else "\033[0m"

	@staticmethod
	def Color(color: int) -> str:
		return f"\033[0;38;5;{color}m" if COLOR else ""


class LogType(Enum):
	Message = 0  # A general information message
	Event = 20  # An event


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30  # A Warning
	Error = 40  # A managed error
	Exception = 50  # An un-managed error


try:
	MIN_LEVEL: LogLevel = LogLevel[LOG_LEVEL.capitalize()]
except KeyError:
	MIN_LEVEL = LogLevel.Info

LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}


class LogEntry(NamedTuple):
	origin: str
	time: float
	type: LogType = LogType.Message
	level: LogLevel = LogLevel.Info
	message: str | None = None
	name: str | None = None
	value: TPrimitive | None = None
	context: dict[str, TPrimitive] | None = None
	icon: str | None = None


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.NORMAL}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, list) or isinstance(value, tuple):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def send(entry: LogEntry) -> LogEntry:
	if entry.level.value < MIN_LEVEL.value:
		return entry
	icon: str = f" {entry.icon}" if entry.icon else ""
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	if entry.type == LogType.Event:
		ERR.write(
			f"{clr}{Term.BOLD}[{entry.origin}] {entry.name}{Term.RESET} {formatData(entry.value)} {formatData(entry.context)}{Term.RESET}\n"
		)
	else:
		ERR.write(
			f"{clr}{Term.BOLD}[{entry.origin}]{Term.RESET}{icon} {entry.message} {formatData(entry.context)}{Term.RESET}\n"
		)
	ERR.flush()
	return entry


def entry(
	*,
	origin: str | None = None,
	at: float | None = None,
	type: LogType = LogType.Message,
	level: LogLevel = LogLevel.Info,
	message: str | None = None,
	name: str | None = None,
	value: TPrimitive | None = None,
	context: dict[str, TPrimitive],
	icon: str | None = None,
) -> LogEntry:
	return LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time() if at is None else at,
		type=type,
		level=level,
		message=message,
		name=name,
		value=value,
		context=context,
		icon=icon,
	)


def debug(
	message: str,
	*,
	origin: str | None = None,
	at: float | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			message=message,
			level=LogLevel.Debug,
			origin=origin,
			at=at,
			context=context,
			icon=icon,
		)
	)


def info(
	message: str,
	*,
	origin: str | None = None,
	at: float | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(message=message, origin=origin, at=at, context=context, icon=icon)
	)


def warning(
	message: str,
	*,
	origin: str | None = None,
	at: float | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			message=message,
			level=LogLevel.Warning,
			origin=origin,
			at=at,
			context=context,
			icon=icon,
		)
	)


def error(
	message: str,
	code: int | str | None,
	*,
	origin: str | None = None,
	at: float | None = None,
	icon: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			message=message,
			value=code,
			level=LogLevel.Error,
			origin=origin,
			at=at,
			context=context,
			icon=icon,
		)
	)


def event(
	event: str,
	value: Any = None,
	*,
	origin: str | None = None,
	at: float | None = None,
	**context: TPrimitive,
) -> LogEntry:
	return send(
		entry(
			name=event,
			value=value,
			type=LogType.Event,
			origin=origin,
			at=at,
			context=context,
		)
	)


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	try:
		stream = ERR
		stream.write(
			f"!!! EXCP {f'{message}: [{exception.__class__.__name__}] {exception}' if message else f'[{exception.__class__.__name__}] {exception}'}\n"
		)
		tb = exception.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			stream.write(
				f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n",
			)
			tb = tb.tb_next
		stream.flush()
	except Exception:  # nosec: B110
		# Swallow all exceptions so that this function can be called from an exception
		# handler safely, such as in the implementation of logging/logging sinks.
		pass

	# Return the exception so that this function can be called like:
	#   raise exception(e)
	return exception


def access(
	address: str,
	protocol: str,
	method: str,
	uri: str,
	*,
	at: datetime | None = None,
) -> str:
	"""Writes the access line for a request to stdout, as
	`{ip} [{timestamp}] {protocol}:{method} {uri}`, and returns it."""
	line: str = f"{address} [{(at or datetime.now()).strftime(ACCESS_TIME_FORMAT)}] {protocol}:{method} {uri}"
	# NOTE: We resolve stdout on each call so that it can be captured
	out = sys.stdout
	out.write(f"{line}\n")
	out.flush()
	return line


def banner(line: str) -> str:
	"""Writes the startup line to stdout."""
	out = sys.stdout
	out.write(f"{line}\n")
	out.flush()
	return line


LOGGED_LEVEL: dict[Any, LogLevel] = {
	debug: LogLevel.Debug,
	info: LogLevel.Info,
	warning: LogLevel.Warning,
	error: LogLevel.Error,
}


def logged(item: Any) -> bool:
	"""Takes one of the logging function, and tells if it is currently
	supported. This is used to guard against running the whole entry
	building when not necessary."""
	level: LogLevel | None = LOGGED_LEVEL.get(item)
	return level is None or level.value >= MIN_LEVEL.value


# EOF
