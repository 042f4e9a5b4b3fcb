from pathlib import Path
from typing import Iterator

from ..config import (
	ERR_BAD_REQUEST,
	ERR_INTERNAL_SERVER_ERROR,
	ERR_NOT_FOUND,
	LOG_REQUESTS,
	SERVER_VERSION,
)
from ..http.model import HTTPRequest, HTTPResponse
from ..model import Service
from ..utils.files import classify, iterDirectory, stream
from ..utils.htmpl import H, raw
from ..utils.logging import access, warning
from ..utils.uri import RequestURI, RequestURIForm


class FileService(Service):
	"""Serves the files found under a document root, and a listing of the
	document root itself.

	Requests are handled in this order:

	- the request is logged and the `Server` header is set,
	- the URI is resolved into a relative path, or answered with a 400,
	- the path is classified, substituting `index.html` for an empty final
	  component,
	- directories (and the document root, always) are listed, missing paths
	  are answered with a 404, and files are streamed, or answered with a
	  500 when they can't be opened.

	Failures that happen once a listing or a file has started streaming
	propagate to the server, which drops the connection."""

	def __init__(
		self, root: str | Path | None = None, *, logRequests: bool = LOG_REQUESTS
	):
		# The root stays relative so that paths resolve against the current
		# directory at the time of the request.
		self.root: Path = root if isinstance(root, Path) else Path(root or ".")
		self.logRequests: bool = logRequests
		super().__init__()

	def resolve(self, request: HTTPRequest) -> str | None:
		"""Returns the path of the request URI without its leading `/`, or
		`None` when the URI has no path (`*`, authority form or garbage).
		The path is neither decoded nor normalized."""
		uri = RequestURI.Parse(request.uri)
		if uri.form in (RequestURIForm.AbsolutePath, RequestURIForm.AbsoluteURI):
			return uri.path[1:] if uri.path else ""
		else:
			return None

	def renderDirectory(self, dirname: str) -> Iterator[str]:
		"""Streams the listing of the directory at `dirname`. The name is
		written as-is in the title and heading."""
		title = raw(f"Index of {dirname}")
		page = H.html(H.head(H.title(title)))
		body = H.body(H.h1(title))
		listing = H.ul()
		yield "".join(
			(
				*page.iterHTML(close=False),
				*body.iterHTML(close=False),
				*listing.iterHTML(close=False),
				"\n",
			)
		)
		for entry in iterDirectory(self.root / dirname):
			href: str = f"{entry.name}/" if entry.isDirectory else entry.name
			yield f"{H.li(H.a(raw(entry.name), href=raw(href)))}\n"
		yield f"{listing.closing()}{body.closing()}{page.closing()}"

	def process(self, request: HTTPRequest) -> HTTPResponse:
		if self.logRequests:
			access(request.peer, request.protocol, request.method, request.uri)
		headers: dict[str, str] = {"Server": SERVER_VERSION}

		path: str | None = self.resolve(request)
		if path is None:
			warning("Invalid URI", URI=request.uri)
			return request.badRequest(ERR_BAD_REQUEST, headers)

		found = classify(path, self.root)
		# NOTE: `isDirectory` is about the path with `index.html` substituted,
		# so `sub/` is only listed when `sub/index.html` is a directory.
		if found.isDirectory or path == "":
			return request.respondStream(self.renderDirectory(path), headers)
		elif not found.exists:
			warning("Not found", Path=found.path)
			return request.notFound(ERR_NOT_FOUND, headers)

		try:
			file = open(self.root / found.path, "rb")
		except OSError as e:
			warning("Can't open file", Path=found.path, Reason=str(e))
			return request.fail(ERR_INTERNAL_SERVER_ERROR, headers)
		return request.respondStream(stream(file), headers)


# EOF
