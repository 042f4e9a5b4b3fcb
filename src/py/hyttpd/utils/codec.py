from abc import ABC, abstractmethod
from typing import Literal


class BytesTransform(ABC):
	"""An abstract bytes transform."""

	@abstractmethod
	def feed(self, chunk: bytes, more: bool = False) -> bytes | None | Literal[False]:
		"""Feeds bytes to the transform, may return a value."""

	@abstractmethod
	def flush(self) -> bytes | None | Literal[False]:
		"""Ensures that the bytes transform is flushed, for chunked encodings this will produce the last chunk."""


# SEE: https://httpwg.org/specs/rfc9112.html#chunked.encoding
class ChunkedEncoder(BytesTransform):
	"""Encodes each fed chunk as an HTTP/1.1 chunk, the flush producing the
	terminating zero-length chunk."""

	def feed(self, chunk: bytes, more: bool = False) -> bytes | None | Literal[False]:
		# An empty chunk would be read as the end of the body
		if not chunk:
			return None
		return f"{len(chunk):X}\r\n".encode("ascii") + chunk + b"\r\n"

	def flush(self) -> bytes | None | Literal[False]:
		return b"0\r\n\r\n"


# EOF
