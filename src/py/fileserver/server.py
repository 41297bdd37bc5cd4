import asyncio
import socket
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, Coroutine, Literal, NamedTuple

from .config import HOST, LOG_REQUESTS, PORT, ServerConfig
from .http.model import (
	HTTPBodyFile,
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .model import Application, Service, mount
from .utils.limits import LimitType, unlimit
from .utils.logging import debug, event, exception, info, metric, warning

# Client disconnections, these only end the response
DISCONNECTED: tuple[type[Exception], ...] = (
	BrokenPipeError,
	ConnectionResetError,
	ConnectionAbortedError,
)


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
	backlog: int = 1_024
	# This is the polling timeout for accepting new requests, it bounds the
	# time it takes to notice a stop.
	polling: float = 1.0
	readsize: int = 4_096
	keepalive: float = 60.0
	logRequests: bool = LOG_REQUESTS
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 21\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal server error"
)


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO sockets."""

	def __init__(
		self,
		client: "socket.socket",
		loop: asyncio.AbstractEventLoop,
	) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(self, chunk: bytes | None | Literal[False]) -> bool:
		if chunk:
			await self.loop.sock_sendall(self.client, chunk)
		return True

	async def _writeFile(self, body: HTTPBodyFile, size: int = 64_000) -> bool:
		count: int = body.length
		if not count:
			return True
		with body.file or open(body.path, "rb") as f:
			self.written += await self.loop.sock_sendfile(
				self.client, f, body.offset, count
			)
		return True


class AIOSocketServer:
	"""AsyncIO backend using sockets directly, with one task per connection."""

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Asynchronous worker, processing the requests of a client socket in
		the context of an application, until the connection is closed."""
		size: int = options.readsize
		buffer = bytearray(size)
		keep_alive: bool = True
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		req_count: int = 0
		res_count: int = 0
		try:
			parser: HTTPParser = HTTPParser()
			writer: AIOSocketBodyWriter = AIOSocketBodyWriter(client, loop)
			while keep_alive:
				try:
					n = await asyncio.wait_for(
						loop.sock_recv_into(client, buffer),
						timeout=options.keepalive,
					)
				except asyncio.TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not n:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					break
				# NOTE: With HTTP Pipelining, we may receive more than one
				# request in the same payload.
				for atom in parser.feed(bytes(buffer[:n])):
					if atom is HTTPProcessingStatus.BadFormat:
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req = atom
						if options.logRequests:
							event(req.method, req.path)
						req_count += 1
						if (
							req.protocol == "HTTP/1.0"
							or (req.header("Connection") or "").lower() == "close"
						):
							keep_alive = False
						res = await cls.SendResponse(req, app, writer)
						if res:
							res_count += 1
							if res.shouldClose:
								keep_alive = False
						else:
							keep_alive = False
						if not keep_alive:
							break
			if status is HTTPProcessingStatus.Timeout and req_count != res_count:
				warning(
					"Client timed out",
					Status=status.name,
					Requests=req_count,
					Responses=res_count,
				)
			else:
				debug(
					"Client done",
					Status=status.name,
					Requests=req_count,
					Responses=res_count,
				)
		except DISCONNECTED:
			pass
		except Exception as e:
			exception(e)
		finally:
			# The loop above takes care of keep alive, so we always close
			# the connection on exit.
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		writer: HTTPBodyWriter,
	) -> HTTPResponse | None:
		"""Processes the request within the application and sends a response
		using the given writer. Returns `None` when no proper response could be
		sent, in which case the connection should be closed."""
		req: HTTPRequest = request
		res: HTTPResponse | None = None
		sent: bool = False
		try:
			r: HTTPResponse | Coroutine[Any, Any, HTTPResponse] = app.process(req)
			res = r if isinstance(r, HTTPResponse) else await r
		except Exception as e:
			exception(e, f"Handler failed for {req.method} {req.path}")
		if res is not None:
			writer.written = 0
			try:
				await writer.write(res.head())
				sent = True
				if req.method != "HEAD":
					await writer.write(res.body)
					# A body shorter than announced leaves the client waiting,
					# closing the connection is the only way out.
					if (
						res.contentLength is not None
						and writer.written != res.contentLength
					):
						res.shouldClose = True
			except DISCONNECTED:
				# Client did an early close
				res.shouldClose = True
			except Exception as e:
				exception(e)
				res.shouldClose = True
		if res and res._onClose:
			try:
				res._onClose(res)
			except Exception as e:
				exception(e)
		if not sent:
			warning(
				"Server did not send a response",
				Method=req.method,
				Path=req.path,
			)
			try:
				await writer.write(SERVER_ERROR)
			except DISCONNECTED:
				pass
			return None
		return res

	@staticmethod
	def Bind(options: ServerOptions) -> socket.socket:
		"""Creates the listening socket, raising `OSError` when the address
		can't be bound."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		try:
			server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
			server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
			server.bind((options.host, options.port))
			# The argument is the backlog of connections that will be accepted
			# before they are refused.
			server.listen(options.backlog)
		except OSError:
			server.close()
			raise
		# This is what we need to use it with asyncio
		server.setblocking(False)
		return server

	@classmethod
	async def Serve(
		cls,
		app: Application,
		server: socket.socket,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine, accepting connections on the bound `server`
		socket until stopped."""
		tasks: set[asyncio.Task[None]] = set()
		loop = asyncio.get_running_loop()

		state = ServerState()
		# Signal handlers can only be registered from the main thread
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, lambda: state.stop())
			loop.add_signal_handler(SIGTERM, lambda: state.stop())
		loop.set_exception_handler(state.onException)

		host, port = server.getsockname()[:2]
		info("Server listening", icon="🚀", Host=host, Port=port)

		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# This can be: [OSError] [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnRequest(app, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)


def run(
	*components: Application | Service,
	config: ServerConfig,
	condition: Callable[[], bool] | None = None,
	logRequests: bool = LOG_REQUESTS,
) -> None:
	"""High level function to run the server, raises `OSError` when the
	configured address can't be bound."""
	unlimit(LimitType.Files)
	options = ServerOptions(
		host=config.host,
		port=config.port,
		condition=condition,
		logRequests=logRequests,
	)
	app = mount(*components)
	server = AIOSocketServer.Bind(options)
	host, port = server.getsockname()[:2]
	metric(f"Serving {config.root} on http://{host}:{port}")
	try:
		asyncio.run(AIOSocketServer.Serve(app, server, options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
