from abc import ABC, abstractmethod
from enum import Enum
from functools import lru_cache
from typing import (
	Any,
	Iterator,
	Literal,
	NamedTuple,
	TypeAlias,
	Union,
)

from ..utils.codec import BytesTransform
from ..utils.io import DEFAULT_ENCODING, asWritable
from .api import ResponseFactory
from .status import HTTP_STATUS

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


@lru_cache(maxsize=256)
def headername(name: str) -> str:
	"""Normalizes the header name as `Kebab-Case`. Only the most recently
	seen names are cached, as clients choose them."""
	return "-".join(_.capitalize() for _ in name.split("-"))


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request line, the URI is kept as found on the wire."""

	method: str
	uri: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Processing = 0
	Body = 1
	Timeout = 10
	NoData = 11
	BadFormat = 12


# Type alias for what the parser produces
HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	"HTTPRequest",
]

# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a part (or a whole) body as bytes."""

	payload: bytes = b""
	length: int = 0

	@staticmethod
	def FromBytes(data: bytes) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=data, length=len(data))


class HTTPBodyStream(NamedTuple):
	"""An HTTP body that is generated from a stream, of unknown length."""

	stream: Iterator[str | bytes]

	def close(self) -> None:
		"""Closes the underlying generator, releasing whatever it holds."""
		close = getattr(self.stream, "close", None)
		if close:
			close()


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyStream


class HTTPBodyWriter(ABC):
	"""A generic writer for bodies that supports bytes encoding."""

	__slots__ = ["transform", "shouldClose"]

	def __init__(self, transform: BytesTransform | None) -> None:
		self.transform: BytesTransform | None = transform
		self.shouldClose: bool = False

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body. Exceptions raised by a stream
		while it is consumed are propagated."""
		if isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._write(body.payload)
		elif isinstance(body, HTTPBodyStream):
			for _ in body.stream:
				await self._write(asWritable(_), True)
			return True
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def flush(self) -> bool:
		if self.transform:
			chunk = self.transform.flush()
			if chunk:
				await self._writeBytes(chunk)
		return True

	async def _write(self, chunk: bytes, more: bool = False) -> bool:
		return await self._writeBytes(
			self.transform.feed(chunk, more) if self.transform else chunk, more
		)

	@abstractmethod
	async def _writeBytes(
		self, chunk: bytes | None | Literal[False], more: bool = False
	) -> bool: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP request, which also acts as a factory for
	responses. Requests are not modified once parsed."""

	__slots__ = [
		"peer",
		"protocol",
		"method",
		"uri",
		"_headers",
		"_body",
	]

	def __init__(
		self,
		method: str,
		uri: str,
		headers: HTTPHeaders | None = None,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
		peer: str = "",
	):
		super().__init__()
		self.peer: str = peer
		self.method: str = method
		self.uri: str = uri
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers or HTTPHeaders({})
		self._body: HTTPBodyBlob | None = body

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	@property
	def contentLength(self) -> int | None:
		return self._headers.contentLength

	@property
	def body(self) -> HTTPBodyBlob:
		return self._body or HTTPBodyBlob()

	@property
	def keepAlive(self) -> bool:
		"""Tells if the connection can be reused after this request."""
		connection: str = (self.header("Connection") or "").lower()
		if self.protocol == "HTTP/1.1":
			return connection != "close"
		else:
			return connection == "keep-alive"

	def respond(
		self,
		content: Any = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			# We answer with the same HTTP/1.x version as the client
			protocol=self.protocol if self.protocol == "HTTP/1.0" else "HTTP/1.1",
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.uri} {self.protocol} {self.peer})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response. The headers only hold what the application set,
	framing headers are given to `head()` by the server."""

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
	]

	@staticmethod
	def Create(
		content: Any = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, str):
			body = HTTPBodyBlob.FromBytes(content.encode(DEFAULT_ENCODING))
		elif isinstance(content, bytes):
			body = HTTPBodyBlob.FromBytes(content)
		elif isinstance(content, Iterator):
			body = HTTPBodyStream(content)
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				{headername(k): v for k, v in headers.items()} if headers else {}
			),
			body=body,
			protocol=protocol,
		)

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
	):
		super().__init__()
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body

	@property
	def isStreamed(self) -> bool:
		return isinstance(self.body, HTTPBodyStream)

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def head(self, framing: dict[str, str] | None = None) -> bytes:
		"""Serializes the head as a payload, with the given framing headers
		appended after the response's own."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [f"{self.protocol} {self.status} {message}"]
		for k, v in self.headers.headers.items():
			lines.append(f"{headername(k)}: {v}")
		for k, v in (framing or {}).items():
			lines.append(f"{headername(k)}: {v}")
		lines.append("")
		lines.append("")
		return "\r\n".join(lines).encode("latin1")

	def close(self) -> None:
		"""Releases the resources held by a streamed body."""
		if isinstance(self.body, HTTPBodyStream):
			self.body.close()

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
