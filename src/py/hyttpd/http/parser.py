from typing import ClassVar, Iterator, Literal
from ..utils.io import LineParser
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPBodyBlob,
	HTTPAtom,
	HTTPProcessingStatus,
	headername,
)

# NOTE: The request line and headers are decoded as latin1, which maps every
# byte to a character and never fails.
HEAD_ENCODING: str = "latin1"


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "MessageParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		"""Returns `True` when a request line was parsed, `False` when the
		line is not a valid request line and `None` when more data is
		needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			# Empty lines preceding the request line are ignored
			self.line.reset()
			return None, read
		else:
			fields: list[str] = line.decode(HEAD_ENCODING).split(" ")
			if len(fields) != 3 or not fields[0] or not fields[1]:
				return False, read
			method, uri, protocol = fields
			if not protocol.startswith("HTTP/"):
				return False, read
			self.value = HTTPRequestLine(method, uri, protocol)
			return True, read

	def __str__(self) -> str:
		return f"MessageParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		super().__init__()
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` it's the empty
		line ending the headers, and when it is a string, it's the name of
		the header that was added."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return False, read
		else:
			ln: str = line.decode(HEAD_ENCODING)
			i = ln.find(":")
			if i == -1:
				# Lines that are not headers are skipped
				return None, read
			h = ln[:i].lower().strip()
			v = ln[i + 1 :].strip()
			if h == "content-length":
				try:
					self.contentLength = int(v)
				except ValueError:
					self.contentLength = None
			elif h == "content-type":
				self.contentType = v
			n: str = headername(h)
			self.headers[n] = v
			return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with ContentLength set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(b"".join(self.data), self.read)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		"""Returns `True` once the expected length has been read."""
		to_read: int = min(len(chunk) - start, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return (True if self.read >= self.expected else None), to_read


class HTTPParser:
	"""A stateful HTTP request parser, for the requests coming from a
	single peer."""

	METHOD_HAS_BODY: ClassVar[set[str]] = {"POST", "PUT", "PATCH"}

	def __init__(self, peer: str = "") -> None:
		self.peer: str = peer
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.bodyLength: BodyLengthParser = BodyLengthParser()
		self.parser: MessageParser | HeadersParser | BodyLengthParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def request(self, body: HTTPBodyBlob) -> HTTPRequest:
		line = self.requestLine
		if line is None:
			raise RuntimeError("Cannot create a request without a request line")
		return HTTPRequest(
			method=line.method,
			uri=line.uri,
			protocol=line.protocol,
			headers=self.requestHeaders,
			body=body,
			peer=self.peer,
		)

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		"""Feeds the chunk to the parser, yielding the atoms that it
		produces. A chunk may contain more than one request (pipelining)
		and a request may span more than one chunk."""
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# The underlying parser keeps a buffer up until it is flushed, so
			# partially read chunks never need to be fed again.
			ln, read = self.parser.feed(chunk, offset)
			offset += read
			if ln is None:
				continue
			elif self.parser is self.message:
				if ln is False:
					self.message.reset()
					yield HTTPProcessingStatus.BadFormat
				else:
					self.requestLine = self.message.flush()
					self.requestHeaders = None
					if self.requestLine:
						yield self.requestLine
					self.parser = self.headers.reset()
			elif self.parser is self.headers:
				# `ln` is the header name until we reach the empty line
				if ln is False:
					headers = self.headers.flush()
					self.requestHeaders = headers
					yield headers
					if (
						self.requestLine
						and self.requestLine.method in self.METHOD_HAS_BODY
						and (headers.contentLength or 0) > 0
					):
						self.parser = self.bodyLength.reset(headers.contentLength or 0)
						yield HTTPProcessingStatus.Body
					else:
						yield self.request(HTTPBodyBlob())
						self.parser = self.message.reset()
			elif self.parser is self.bodyLength:
				yield self.request(self.bodyLength.flush())
				self.parser = self.message.reset()
			else:
				raise RuntimeError(f"Unsupported parser: {self.parser}")


# EOF
