from hyttpd.utils.io import LineParser, asWritable


def test_line_parser_splits_across_chunks():
	parser = LineParser()
	lines: list[bytes] = []
	for chunk in [
		b"GET /time/5 HTTP/1.1\r\nHost: 127.0.0.1\r\nConnection: close",
		b"\r\n\r",
		b"\n",
	]:
		offset: int = 0
		while offset < len(chunk):
			line, read = parser.feed(chunk, offset)
			offset += read
			if line is not None:
				lines.append(line)
	assert lines == [
		b"GET /time/5 HTTP/1.1",
		b"Host: 127.0.0.1",
		b"Connection: close",
		b"",
	]


def test_line_parser_reports_partial_reads():
	parser = LineParser()
	line, read = parser.feed(b"abc")
	assert line is None
	assert read == 3
	line, read = parser.feed(b"def\r\nrest")
	assert line == b"abcdef"
	assert read == 5


def test_as_writable():
	assert asWritable("é") == "é".encode("utf8")
	assert asWritable(b"raw") == b"raw"
	assert asWritable(bytearray(b"raw")) == b"raw"
