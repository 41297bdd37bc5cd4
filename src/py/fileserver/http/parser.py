from typing import Iterator, ClassVar, Literal
from urllib.parse import unquote, unquote_plus
from ..utils.io import LineParser
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPBodyBlob,
	HTTPAtom,
	HTTPProcessingStatus,
	headername,
)


class RequestLineParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "RequestLineParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		line, read = self.line.feed(chunk, start)
		if line:
			# NOTE: Request lines are ASCII, anything else is percent-encoded
			ln = line.decode("latin-1")
			i = ln.find(" ")
			j = ln.rfind(" ")
			if i == -1 or i == j:
				# Not a request line, we'll wait for the next one
				return None, read
			p: list[str] = ln[i + 1 : j].split("?", 1)
			self.value = HTTPRequestLine(
				ln[0:i].strip(), unquote(p[0]), p[1] if len(p) > 1 else "", ln[j + 1 :]
			)
			return True, read
		else:
			return None, read

	def __str__(self) -> str:
		return f"RequestLineParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the next start offset. When the value is `None`, no
		header has been extracted, when the value is `False` it's an empty
		line, and when the value is a string, the named header was added."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif line:
			ln: str = line.decode("latin-1")
			i = ln.find(":")
			if i != -1:
				h = ln[:i].lower().strip()
				v = ln[i + 1 :].strip()
				if h == "content-length":
					try:
						self.contentLength = int(v)
					except ValueError:
						self.contentLength = None
				n: str = headername(h)
				self.headers[n] = v
				return n, read
			else:
				return None, read
		else:
			# An empty line denotes the end of headers
			return False, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with ContentLength set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(b"".join(self.data), self.read)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		left: int = len(chunk) - start
		to_read: int = min(left, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return (True if self.read >= self.expected else None), to_read


class HTTPParser:
	"""A stateful HTTP request parser, producing requests as the data is
	fed. Bodies are only consumed when they have a `Content-Length`."""

	def __init__(self) -> None:
		self.line: RequestLineParser = RequestLineParser()
		self.headers: HeadersParser = HeadersParser()
		self.bodyLength: BodyLengthParser = BodyLengthParser()
		self.parser: RequestLineParser | HeadersParser | BodyLengthParser = self.line
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# The underlying parsers keep a buffer until they are flushed, so
			# a partially read chunk never needs to be fed again.
			ln, read = self.parser.feed(chunk, offset)
			offset += read
			if ln is None:
				continue
			elif self.parser is self.line:
				line = self.line.flush()
				self.requestLine = line
				self.requestHeaders = None
				if line is not None:
					yield line
					self.parser = self.headers
			elif self.parser is self.headers:
				if ln is not False:
					# `ln` is the header name, we continue with the next one
					continue
				headers = self.headers.flush()
				self.requestHeaders = headers
				yield headers
				if headers.contentLength:
					self.parser = self.bodyLength.reset(headers.contentLength)
					yield HTTPProcessingStatus.Body
				else:
					yield self.request(HTTPBodyBlob())
			elif self.parser is self.bodyLength:
				yield self.request(self.bodyLength.flush())
			else:
				raise RuntimeError(f"Unsupported parser: {self.parser}")

	def request(self, body: HTTPBodyBlob) -> HTTPRequest | HTTPProcessingStatus:
		line = self.requestLine
		headers = self.requestHeaders
		self.parser = self.line.reset()
		if line is None or headers is None:
			return HTTPProcessingStatus.BadFormat
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=headers,
			protocol=line.protocol,
			body=body,
		)


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		if len(kv) == 1:
			res[unquote_plus(item)] = ""
		else:
			res[unquote_plus(kv[0])] = unquote_plus(kv[1])
	return res


# EOF
