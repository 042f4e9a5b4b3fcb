import asyncio
import socket
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, Coroutine, Literal, NamedTuple

from .config import HOST, PORT, SERVER_VERSION
from .http.model import (
	HTTPBodyBlob,
	HTTPBodyStream,
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .model import Service
from .utils.codec import BytesTransform, ChunkedEncoder
from .utils.limits import LimitType, unlimit
from .utils.logging import banner, debug, error, event, exception, info, logged, warning


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = HOST
	port: int = PORT
	backlog: int = 10_000
	# This is the polling timeout for accepting new requests. Every second is
	# good
	polling: float = 1.0
	readsize: int = 4_096
	# Idle time after which a kept-alive connection is closed
	keepalive: float = 60.0
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()

SERVER_BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	+ f"Server: {SERVER_VERSION}\r\n".encode("ascii")
	+ b"Content-Length: 0\r\n"
	b"Connection: close\r\n"
	b"\r\n"
)

SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	+ f"Server: {SERVER_VERSION}\r\n".encode("ascii")
	+ b"Content-Length: 0\r\n"
	b"Connection: close\r\n"
	b"\r\n"
)


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO sockets."""

	def __init__(
		self,
		client: "socket.socket",
		loop: asyncio.AbstractEventLoop,
		*,
		transform: BytesTransform | None = None,
	) -> None:
		super().__init__(transform)
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(
		self, chunk: bytes | None | Literal[False], more: bool = False
	) -> bool:
		if chunk is None or chunk is False:
			pass
		else:
			await self.loop.sock_sendall(self.client, chunk)
		return False


class AIOSocketServer:
	"""AsyncIO backend using sockets directly, with one task per accepted
	connection."""

	@classmethod
	async def OnRequest(
		cls,
		service: Service,
		client: socket.socket,
		peer: str,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Asynchronous worker, processing the requests sent through a
		client socket. Any exception escaping the processing of a request
		closes the connection."""
		size: int = options.readsize
		keep_alive: bool = True
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		req_count: int = 0
		res_count: int = 0
		try:
			parser: HTTPParser = HTTPParser(peer)
			writer: AIOSocketBodyWriter = AIOSocketBodyWriter(client, loop)
			# NOTE: The parser may yield more than one request per chunk when
			# HTTP pipelining is used, they're answered in order.
			while keep_alive and not writer.shouldClose:
				try:
					chunk: bytes = await asyncio.wait_for(
						loop.sock_recv(client, size),
						timeout=options.keepalive,
					)
				except asyncio.TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not chunk:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					break
				logged(debug) and debug(
					"Reading Request(s)", Client=f"{id(client):x}", Read=len(chunk)
				)
				for atom in parser.feed(chunk):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request line", Peer=peer)
						await writer.write(SERVER_BAD_REQUEST)
						status = HTTPProcessingStatus.BadFormat
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						keep_alive = atom.keepAlive
						await cls.SendResponse(atom, service, writer)
						res_count += 1
						if not keep_alive or writer.shouldClose:
							break
			if status is HTTPProcessingStatus.Timeout and req_count != res_count:
				warning("Client timed out", Requests=req_count, Responses=res_count)
			elif status is HTTPProcessingStatus.NoData and req_count != res_count:
				warning(
					"Client did not feed a complete request",
					Requests=req_count,
					Responses=res_count,
				)
		except Exception as e:
			exception(e, f"Request aborted for {peer}")
		finally:
			# NOTE: The above loop takes care of keep alive, so we always close
			# the connection on exit.
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		service: Service,
		writer: HTTPBodyWriter,
	) -> HTTPResponse | None:
		"""Processes the request within the service and sends a response using
		the given writer. Exceptions raised before the head is sent are
		propagated, exceptions raised while the body is sent mark the writer
		as needing to close."""
		r: HTTPResponse | Coroutine[Any, Any, HTTPResponse] = service.process(request)
		res: HTTPResponse | None = r if isinstance(r, HTTPResponse) else await r
		if res is None:
			warning(
				"Service did not return a response",
				Method=request.method,
				URI=request.uri,
			)
			await writer.write(SERVER_ERROR)
			writer.shouldClose = True
			return None
		try:
			framing: dict[str, str] = {}
			chunked: bool = False
			if isinstance(res.body, HTTPBodyBlob):
				framing["Content-Length"] = str(res.body.length)
			elif isinstance(res.body, HTTPBodyStream):
				# Streams have no known length: they are either chunked or
				# delimited by closing the connection.
				if res.protocol == "HTTP/1.1":
					framing["Transfer-Encoding"] = "chunked"
					chunked = True
				else:
					writer.shouldClose = True
			else:
				framing["Content-Length"] = "0"
			await writer.write(res.head(framing))
			if request.method != "HEAD":
				writer.transform = ChunkedEncoder() if chunked else None
				await writer.write(res.body)
				await writer.flush()
		except (BrokenPipeError, ConnectionResetError):
			# Client did an early close
			writer.shouldClose = True
		except Exception as e:
			# The head is out: there's no way to report the error to the
			# client, so the connection is dropped mid-response.
			exception(e, f"Response aborted for {request.method} {request.uri}")
			writer.shouldClose = True
		finally:
			writer.transform = None
			res.close()
		return res

	@classmethod
	async def Serve(
		cls,
		service: Service,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			server.bind((options.host, options.port))
		except OSError:
			error(
				f"Unable to bind to {options.host}:{options.port}, aborting.",
				"HOSTPORTERR",
			)
			server.close()
			raise

		# The argument is the backlog of connections that will be accepted before
		# they are refused.
		server.listen(options.backlog)
		# This is what we need to use it with asyncio
		server.setblocking(False)

		tasks: set[asyncio.Task[None]] = set()
		loop = asyncio.get_running_loop()

		# Manage server state
		state = ServerState()
		# Signal handlers can only be installed from the main thread.
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, lambda: state.stop())
			loop.add_signal_handler(SIGTERM, lambda: state.stop())
		loop.set_exception_handler(state.onException)

		await service.start()
		info(
			"Server listening",
			icon="🚀",
			Host=options.host,
			Port=options.port,
			Service=service.name,
		)

		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, address = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# This can be: [OSError] [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)  # Short delay before retrying
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnRequest(
						service,
						client,
						str(address[0]),
						loop=loop,
						options=options,
					)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)
			await service.stop()


def run(
	service: Service,
	*,
	host: str = HOST,
	port: int = PORT,
	backlog: int = OPTIONS.backlog,
	condition: Callable[[], bool] | None = None,
	polling: float = OPTIONS.polling,
	keepalive: float = OPTIONS.keepalive,
	stopSignals: bool = OPTIONS.stopSignals,
) -> None:
	"""High level function to run the server."""
	unlimit(LimitType.Files)
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		condition=condition,
		polling=polling,
		keepalive=keepalive,
		stopSignals=stopSignals,
	)
	banner(f"{SERVER_VERSION} starting; listening on {host}:{port}")
	try:
		asyncio.run(AIOSocketServer.Serve(service, options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
