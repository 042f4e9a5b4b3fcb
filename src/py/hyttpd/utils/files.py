import os.path
from pathlib import Path
from typing import BinaryIO, Iterator, NamedTuple

from ..config import DEFAULT_DOCUMENT

# Size of the chunks read when streaming a file
READ_SIZE: int = 64_000


class PathContractError(RuntimeError):
	"""Raised when an absolute path reaches the classifier, which means the
	request path was not made relative beforehand."""


class Classification(NamedTuple):
	"""Effective relative path of a request and what the filesystem says about
	it at the time of the request."""

	path: str
	exists: bool
	isDirectory: bool


class DirectoryEntry(NamedTuple):
	name: str
	isDirectory: bool


def documentPath(path: str, document: str = DEFAULT_DOCUMENT) -> str:
	"""Substitutes the default document when the path's final component
	is empty, which is the case for `""` and for paths ending with `/`."""
	return path if os.path.basename(path) else os.path.join(path, document)


def classify(path: str, root: Path | str = ".") -> Classification:
	"""Classifies the relative `path` against `root`. The filesystem is
	queried every time, nothing is cached."""
	if os.path.isabs(path):
		raise PathContractError(f"Path is not relative: {path!r}")
	effective: str = documentPath(path)
	# NOTE: `os.path` answers False on any OSError, so names that are too
	# long or not searchable classify as missing.
	local: str = os.path.join(root, effective)
	return Classification(effective, os.path.exists(local), os.path.isdir(local))


def iterDirectory(path: Path | str) -> Iterator[DirectoryEntry]:
	"""Yields the immediate children of the directory at `path`, in the
	order the filesystem returns them."""
	with os.scandir(path) as entries:
		for entry in entries:
			yield DirectoryEntry(entry.name, entry.is_dir())


def stream(file: BinaryIO, size: int = READ_SIZE) -> Iterator[bytes]:
	"""Yields the contents of `file` in chunks of at most `size` bytes until a
	read returns nothing. The file is closed once the stream ends, whether
	it completed or not."""
	try:
		while chunk := file.read(size):
			yield chunk
	finally:
		file.close()


# EOF
