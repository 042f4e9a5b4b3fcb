import asyncio
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Literal

import pytest
import requests

from hyttpd.config import ERR_BAD_REQUEST, ERR_NOT_FOUND, SERVER_VERSION
from hyttpd.http.model import HTTPBodyWriter, HTTPRequest
from hyttpd.server import AIOSocketServer, ServerOptions, run
from hyttpd.services.files import FileService

# -----------------------------------------------------------------------------
#
# RESPONSE FRAMING
#
# -----------------------------------------------------------------------------


class BufferWriter(HTTPBodyWriter):
	def __init__(self) -> None:
		super().__init__(None)
		self.data = bytearray()

	async def _writeBytes(
		self, chunk: bytes | None | Literal[False], more: bool = False
	) -> bool:
		if chunk:
			self.data += chunk
		return True


def send(service: FileService, request: HTTPRequest) -> tuple[bytes, bytes, bool]:
	writer = BufferWriter()
	asyncio.run(AIOSocketServer.SendResponse(request, service, writer))
	head, _, rest = bytes(writer.data).partition(b"\r\n\r\n")
	return head, rest, writer.shouldClose


@pytest.fixture
def root(tmp_path):
	(tmp_path / "a.txt").write_bytes(b"Hello, World!\n")
	(tmp_path / "sub").mkdir()
	return tmp_path


@pytest.fixture
def service(root):
	return FileService(root, logRequests=False)


def test_streamed_body_is_chunked(service):
	head, rest, close = send(service, HTTPRequest("GET", "/a.txt"))
	assert head.split(b"\r\n") == [
		b"HTTP/1.1 200 OK",
		f"Server: {SERVER_VERSION}".encode(),
		b"Transfer-Encoding: chunked",
	]
	assert rest == b"E\r\nHello, World!\n\r\n0\r\n\r\n"
	assert not close


def test_streamed_body_on_http10_closes(service):
	head, rest, close = send(service, HTTPRequest("GET", "/a.txt", protocol="HTTP/1.0"))
	assert head.split(b"\r\n") == [
		b"HTTP/1.0 200 OK",
		f"Server: {SERVER_VERSION}".encode(),
	]
	assert rest == b"Hello, World!\n"
	assert close


def test_fixed_body_has_length(service):
	head, rest, close = send(service, HTTPRequest("GET", "/missing"))
	assert head.split(b"\r\n") == [
		b"HTTP/1.1 404 Not Found",
		f"Server: {SERVER_VERSION}".encode(),
		f"Content-Length: {len(ERR_NOT_FOUND)}".encode(),
	]
	assert rest == ERR_NOT_FOUND
	assert not close


def test_head_has_no_body(service):
	head, rest, close = send(service, HTTPRequest("HEAD", "/a.txt"))
	assert head.startswith(b"HTTP/1.1 200 OK")
	assert rest == b""


def test_mid_stream_failure_truncates_and_closes(service, root, monkeypatch):
	def failing(*args, **kwargs):
		yield "<html>"
		raise PermissionError("denied")

	monkeypatch.setattr(service, "renderDirectory", failing)
	head, rest, close = send(service, HTTPRequest("GET", "/"))
	assert head.startswith(b"HTTP/1.1 200 OK")
	assert rest == b"6\r\n<html>\r\n"
	assert close


def test_contract_violation_propagates(service):
	with pytest.raises(RuntimeError):
		send(service, HTTPRequest("GET", "//etc/passwd"))


# -----------------------------------------------------------------------------
#
# SERVER
#
# -----------------------------------------------------------------------------


def freePort() -> int:
	with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
		s.bind(("127.0.0.1", 0))
		return s.getsockname()[1]


def test_bind_failure_is_raised(tmp_path):
	with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
		busy.bind(("127.0.0.1", 0))
		busy.listen(1)
		options = ServerOptions(
			host="127.0.0.1", port=busy.getsockname()[1], stopSignals=False
		)
		with pytest.raises(OSError) as e:
			asyncio.run(AIOSocketServer.Serve(FileService(tmp_path), options))
		assert e.value.__cause__ is None


@pytest.fixture
def server(tmp_path):
	(tmp_path / "a.txt").write_bytes(b"Hello, World!\n")
	(tmp_path / "sub").mkdir()
	for i in range(8):
		(tmp_path / "sub" / f"{i}.bin").write_bytes(bytes([i]) * (150_000 + i))
	port = freePort()
	running = threading.Event()
	running.set()
	thread = threading.Thread(
		target=run,
		args=(FileService(tmp_path, logRequests=False),),
		kwargs=dict(
			host="127.0.0.1",
			port=port,
			condition=running.is_set,
			polling=0.05,
			stopSignals=False,
		),
		daemon=True,
	)
	thread.start()
	deadline = time.monotonic() + 5.0
	while True:
		try:
			socket.create_connection(("127.0.0.1", port), timeout=0.5).close()
			break
		except OSError:
			if time.monotonic() > deadline:
				raise
			time.sleep(0.05)
	yield f"http://127.0.0.1:{port}", tmp_path
	running.clear()
	thread.join(timeout=5.0)


def raw(url: str, payload: bytes) -> bytes:
	host, port = url.rsplit("/", 1)[-1].split(":")
	with socket.create_connection((host, int(port)), timeout=5.0) as s:
		s.sendall(payload)
		data = bytearray()
		while chunk := s.recv(65_536):
			data += chunk
		return bytes(data)


def test_serves_file(server):
	url, _ = server
	r = requests.get(f"{url}/a.txt")
	assert r.status_code == 200
	assert r.content == b"Hello, World!\n"
	assert r.headers["Server"] == SERVER_VERSION
	assert "Content-Type" not in r.headers
	assert "Content-Length" not in r.headers


def test_lists_root(server):
	url, _ = server
	r = requests.get(f"{url}/")
	assert r.status_code == 200
	assert '<li><a href="sub/">sub</a></li>' in r.text
	assert '<li><a href="a.txt">a.txt</a></li>' in r.text


def test_not_found(server):
	url, _ = server
	r = requests.get(f"{url}/missing")
	assert r.status_code == 404
	assert r.content == ERR_NOT_FOUND


def test_asterisk_is_a_bad_request(server):
	url, _ = server
	res = raw(url, b"OPTIONS * HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n")
	assert res.startswith(b"HTTP/1.1 400 Bad Request\r\n")
	assert res.endswith(b"\r\n\r\n" + ERR_BAD_REQUEST)


def test_malformed_request_line(server):
	url, _ = server
	assert raw(url, b"BOGUS\r\n\r\n").startswith(b"HTTP/1.1 400 Bad Request\r\n")


def test_contract_violation_drops_connection(server):
	url, _ = server
	res = raw(url, b"GET //etc/passwd HTTP/1.1\r\nHost: x\r\n\r\n")
	assert res == b""
	# The server keeps on serving
	assert requests.get(f"{url}/a.txt").status_code == 200


def test_keep_alive_and_pipelining(server):
	url, _ = server
	res = raw(
		url,
		b"GET /missing HTTP/1.1\r\nHost: x\r\n\r\n"
		b"GET /a.txt HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
	)
	assert res.count(b"HTTP/1.1 ") == 2
	assert res.index(b"404 Not Found") < res.index(b"200 OK")
	assert res.endswith(b"E\r\nHello, World!\n\r\n0\r\n\r\n")


def test_http10_is_close_delimited(server):
	url, _ = server
	res = raw(url, b"GET /a.txt HTTP/1.0\r\n\r\n")
	assert res.startswith(b"HTTP/1.0 200 OK\r\n")
	assert res.endswith(b"\r\n\r\nHello, World!\n")


def test_repeated_requests_are_identical(server):
	url, _ = server
	with requests.Session() as session:
		responses = [session.get(f"{url}/sub") for _ in range(3)]
	assert len({r.content for r in responses}) == 1
	assert len({r.status_code for r in responses}) == 1


def test_concurrent_requests_are_independent(server):
	url, root = server

	def fetch(i: int) -> tuple[int, bytes]:
		return i, requests.get(f"{url}/sub/{i % 8}.bin").content

	with ThreadPoolExecutor(max_workers=16) as executor:
		results = list(executor.map(fetch, range(32)))
	for i, content in results:
		assert content == (root / "sub" / f"{i % 8}.bin").read_bytes()
