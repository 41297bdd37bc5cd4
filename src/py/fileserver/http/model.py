import inspect
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import (
	Any,
	Callable,
	BinaryIO,
	Generator,
	Literal,
	NamedTuple,
	TypeAlias,
	TypeVar,
	Union,
)

from ..utils.io import DEFAULT_ENCODING, asWritable
from .api import ResponseFactory
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in name.split("-"))
		headers[key] = normalized
		return normalized


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for request processing."""

	headers: dict[str, str]
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Processing = 0
	Body = 1
	Complete = 2
	Timeout = 10
	NoData = 11
	BadFormat = 12


# Type alias for what the parser produces
HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	"HTTPRequest",
]

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class HTTPRequestError(Exception):
	"""To be raised by handlers to generate an error response, by default a 500."""

	def __init__(
		self,
		message: str,
		status: int | None = None,
		contentType: str | None = None,
	):
		super().__init__(message)
		self.message: str = message
		self.status: int | None = status
		self.contentType: str | None = contentType


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a whole body as bytes."""

	payload: bytes = b""
	length: int = 0


class HTTPBodyFile(NamedTuple):
	"""Represents an HTTP body from a slice of a file, starting at `offset`
	and spanning `length` bytes. The `file` is an already opened handle, owned
	by the body."""

	path: Path
	offset: int
	length: int
	file: BinaryIO | None = None


class HTTPBodyStream(NamedTuple):
	"""An HTTP body that is generated from a stream."""

	stream: Generator[str | bytes, Any, Any]


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile | HTTPBodyStream


class HTTPBodyWriter(ABC):
	"""A generic writer for response bodies, keeping track of how many
	body bytes were written."""

	__slots__ = ["written"]

	def __init__(self) -> None:
		self.written: int = 0

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._write(body.payload)
		elif isinstance(body, HTTPBodyFile):
			return await self._writeFile(body)
		elif isinstance(body, HTTPBodyStream):
			# The generator is always closed, so that resources it holds
			# are released even when the client went away.
			try:
				for _ in body.stream:
					await self._write(asWritable(_))
			finally:
				body.stream.close()
			return True
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFile(self, body: HTTPBodyFile, size: int = 64_000) -> bool:
		left: int = body.length
		with body.file or open(body.path, "rb") as f:
			f.seek(body.offset)
			while left > 0 and (chunk := f.read(min(size, left))):
				left -= len(chunk)
				await self._write(chunk)
		return True

	async def _write(self, chunk: bytes) -> bool:
		self.written += len(chunk)
		return await self._writeBytes(chunk)

	@abstractmethod
	async def _writeBytes(self, chunk: bytes | None | Literal[False]) -> bool: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP requests, which also acts as a factory for
	responses."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"query",
		"_headers",
		"_body",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers
		self._body: HTTPBodyBlob | None = body

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	def param(self, name: str, default: T | None = None) -> str | T | None:
		return self.query.get(name, default) if self.query else default

	@property
	def body(self) -> HTTPBodyBlob:
		return self._body or HTTPBodyBlob()

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol=self.protocol,
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.query}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		payload: bytes | None = None
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, str):
			payload = content.encode(DEFAULT_ENCODING)
		elif isinstance(content, bytes):
			payload = content
		elif isinstance(content, HTTPBodyFile):
			body = content
			contentLength = body.length
		elif inspect.isgenerator(content):
			body = HTTPBodyStream(content)
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		# If we have a payload then it's a Blob response
		if payload is not None:
			contentLength = len(payload)
			body = HTTPBodyBlob(payload, contentLength)
		res = HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers={},
			body=body,
			protocol=protocol,
		)
		# Explicit headers take precedence over the derived ones
		if contentType is not None:
			res.setHeader("Content-Type", contentType)
		if contentLength is not None:
			res.setHeader("Content-Length", contentLength)
		elif body is None and status not in (204, 304):
			res.setHeader("Content-Length", 0)
		if headers:
			res.setHeaders(headers)
		if isinstance(body, HTTPBodyFile) and body.file:
			file = body.file
			res.onClose(lambda _: file.close())
		# Streams of unknown length can only end by closing the connection
		res.shouldClose = res.contentLength is None
		return res

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
		"shouldClose",
		"_onClose",
	]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: dict[str, str],
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: dict[str, str] = headers
		self.body: THTTPBody | None = body
		self._onClose: Callable[[HTTPResponse], None] | None = None
		self.shouldClose: bool = shouldClose

	@property
	def contentType(self) -> str | None:
		return self.headers.get("Content-Type")

	@property
	def contentLength(self) -> int | None:
		v = self.headers.get("Content-Length")
		return None if v is None else int(v)

	def header(self, name: str) -> str | None:
		return self.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.pop(headername(name), None)
		else:
			self.headers[headername(name)] = str(value)
		return self

	def setHeaders(self, headers: dict[str, str | int | None]) -> "HTTPResponse":
		for k, v in headers.items():
			self.setHeader(k, v)
		return self

	def head(self) -> bytes:
		"""Serializes the head as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [f"{k}: {v}" for k, v in self.headers.items()]
		lines.insert(0, f"{self.protocol} {self.status} {message}")
		lines.append("")
		lines.append("")
		# Header values are latin-1 per RFC 9110
		return "\r\n".join(lines).encode("latin-1", errors="replace")

	def onClose(
		self, callback: Callable[["HTTPResponse"], None] | None
	) -> "HTTPResponse":
		self._onClose = callback
		return self

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
