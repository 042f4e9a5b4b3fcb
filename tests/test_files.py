import io

import pytest

from hyttpd.utils.files import (
	Classification,
	DirectoryEntry,
	PathContractError,
	classify,
	documentPath,
	iterDirectory,
	stream,
)


@pytest.mark.parametrize(
	"path,effective",
	[
		("", "index.html"),
		("sub/", "sub/index.html"),
		("a/b/", "a/b/index.html"),
		("a.txt", "a.txt"),
		("sub", "sub"),
	],
)
def test_document_path(path, effective):
	assert documentPath(path) == effective


@pytest.fixture
def root(tmp_path):
	(tmp_path / "a.txt").write_bytes(b"A")
	(tmp_path / "sub").mkdir()
	(tmp_path / "sub" / "b.txt").write_bytes(b"B")
	return tmp_path


def test_classify_file(root):
	assert classify("a.txt", root) == Classification("a.txt", True, False)


def test_classify_missing(root):
	assert classify("missing.txt", root) == Classification("missing.txt", False, False)


def test_classify_directory_without_separator(root):
	assert classify("sub", root) == Classification("sub", True, True)


def test_classify_directory_with_separator_looks_for_index(root):
	# The substituted path is what gets classified, not the directory
	assert classify("sub/", root) == Classification("sub/index.html", False, False)
	(root / "sub" / "index.html").write_bytes(b"index")
	assert classify("sub/", root) == Classification("sub/index.html", True, False)


def test_classify_index_directory(root):
	(root / "sub" / "index.html").mkdir()
	assert classify("sub/", root) == Classification("sub/index.html", True, True)


def test_classify_root(root):
	assert classify("", root) == Classification("index.html", False, False)


def test_classify_name_too_long_is_missing(root):
	name = "x" * 300
	assert classify(name, root) == Classification(name, False, False)


def test_classify_is_not_cached(root):
	assert not classify("late.txt", root).exists
	(root / "late.txt").write_bytes(b"")
	assert classify("late.txt", root).exists


def test_classify_rejects_absolute_paths(root):
	with pytest.raises(PathContractError):
		classify("/etc/passwd", root)


def test_iter_directory(root):
	assert sorted(iterDirectory(root)) == [
		DirectoryEntry("a.txt", False),
		DirectoryEntry("sub", True),
	]


def test_stream_reads_until_empty_read():
	f = io.BytesIO(b"0123456789")
	assert list(stream(f, size=4)) == [b"0123", b"4567", b"89"]
	assert f.closed


def test_stream_closes_file_when_abandoned():
	f = io.BytesIO(b"0123456789")
	chunks = stream(f, size=4)
	assert next(chunks) == b"0123"
	chunks.close()
	assert f.closed


def test_stream_propagates_read_errors():
	class Failing(io.BytesIO):
		def read(self, size=-1):
			raise OSError("disk on fire")

	f = Failing(b"")
	with pytest.raises(OSError):
		list(stream(f))
	assert f.closed
