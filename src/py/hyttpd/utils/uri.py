from enum import Enum
from typing import NamedTuple
from urllib.parse import urlsplit


class RequestURIForm(Enum):
	"""The forms a request target can take in an HTTP/1.x request line."""

	AbsolutePath = 0  # /a/b
	AbsoluteURI = 1  # http://host/a/b
	Authority = 2  # host:port, as used by CONNECT
	Asterisk = 3  # *, as used by OPTIONS
	Invalid = 4


class RequestURI(NamedTuple):
	"""A request target, as found on the request line."""

	form: RequestURIForm
	raw: str
	scheme: str | None = None
	host: str | None = None
	path: str | None = None

	@classmethod
	def Parse(cls, uri: str) -> "RequestURI":
		if uri.startswith("/"):
			# The path is kept verbatim, query string included
			return RequestURI(RequestURIForm.AbsolutePath, uri, path=uri)
		elif uri == "*":
			return RequestURI(RequestURIForm.Asterisk, uri)
		elif "://" in uri:
			try:
				res = urlsplit(uri)
			except ValueError:
				return RequestURI(RequestURIForm.Invalid, uri)
			if not (res.scheme and res.netloc):
				return RequestURI(RequestURIForm.Invalid, uri)
			return RequestURI(
				RequestURIForm.AbsoluteURI,
				uri,
				scheme=res.scheme,
				host=res.netloc,
				# An empty path is serialized as the root
				path=res.path or "/",
			)
		elif uri and " " not in uri and "/" not in uri:
			return RequestURI(RequestURIForm.Authority, uri, host=uri)
		else:
			return RequestURI(RequestURIForm.Invalid, uri)


# EOF
