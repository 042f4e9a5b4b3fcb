from abc import ABC, abstractmethod
from typing import Any, Generic, Iterator, TypeVar

from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------

# --
# == HTTP Request Response API
#
# Defines the high level API functions (orthogonal to the underlying model)
# to create responses from a request. None of these set a content type or
# a content length: framing is left to the server.


class ResponseFactory(ABC, Generic[T]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	def error(
		self,
		status: int,
		content: str | bytes | None = None,
		headers: dict[str, str] | None = None,
	) -> T:
		message = HTTP_STATUS.get(status, "Server Error")
		return self.respond(
			content=message if content is None else content,
			status=status,
			message=message,
			headers=headers,
		)

	def badRequest(
		self,
		content: str | bytes | None = None,
		headers: dict[str, str] | None = None,
		*,
		status: int = 400,
	) -> T:
		return self.error(status, content=content, headers=headers)

	def notFound(
		self,
		content: str | bytes | None = None,
		headers: dict[str, str] | None = None,
		*,
		status: int = 404,
	) -> T:
		return self.error(status, content=content, headers=headers)

	def fail(
		self,
		content: str | bytes | None = None,
		headers: dict[str, str] | None = None,
		*,
		status: int = 500,
	) -> T:
		return self.error(status, content=content, headers=headers)

	def respondStream(
		self,
		stream: Iterator[str | bytes],
		headers: dict[str, str] | None = None,
		status: int = 200,
	) -> T:
		"""Responds with a body produced by `stream`, which is only consumed
		once the response head has been sent."""
		return self.respond(content=stream, status=status, headers=headers)


# EOF
