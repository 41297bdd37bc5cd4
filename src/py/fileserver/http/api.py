import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Generic, Iterator, TypeVar

from ..utils.files import contentType as getContentType
from ..utils.json import json
from .ranges import (
	Precondition,
	RangeNotSatisfiable,
	checkPreconditions,
	httpdate,
	matchesIfRange,
	parseRange,
)
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------

# --
# == HTTP Request Response API
#
# Defines the high level API functions (orthogonal to the underlying model)
# to create responses from a request.


class ResponseFactory(ABC, Generic[T]):
	method: str

	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	@abstractmethod
	def header(self, name: str) -> str | None: ...

	def error(
		self,
		status: int,
		content: str | None = None,
		contentType: str = "text/plain",
		headers: dict[str, str] | None = None,
	) -> T:
		message = HTTP_STATUS.get(status, "Server Error")
		return self.respond(
			content=message if content is None else content,
			contentType=contentType,
			status=status,
			message=message,
			headers=headers,
		)

	def notFound(
		self,
		content: str = "Not Found",
		contentType: str = "text/plain",
		*,
		status: int = 404,
	) -> T:
		return self.error(status, content=content, contentType=contentType)

	def notModified(self, headers: dict[str, str] | None = None) -> T:
		return self.respondEmpty(304, headers)

	def fail(
		self,
		content: str | None = None,
		*,
		status: int = 500,
		contentType: str = "text/plain",
	) -> T:
		return self.error(status, content=content, contentType=contentType)

	def returns(
		self,
		value: Any,
		headers: dict[str, str] | None = None,
		*,
		status: int = 200,
		contentType: str = "application/json",
	) -> T:
		payload: bytes = json(value)
		return self.respond(
			payload,
			contentType=contentType,
			contentLength=len(payload),
			headers=headers,
			status=status,
		)

	def respondText(
		self,
		content: str | bytes,
		contentType: str = "text/plain",
		status: int = 200,
	) -> T:
		return self.respond(content=content, contentType=contentType, status=status)

	def respondHTML(
		self, html: str | bytes | Iterator[str | bytes], status: int = 200
	) -> T:
		return self.respond(
			content=html, contentType="text/html; charset=utf-8", status=status
		)

	def respondFile(
		self,
		path: Path | str,
		headers: dict[str, str] | None = None,
		contentType: str | None = None,
	) -> T:
		"""Serves the file at `path`, honouring single byte `Range` requests
		(206, or 416 when not satisfiable), `If-Range` and the modification
		date preconditions (304, 412). Fails with a 500 when the file can't be
		opened."""
		# NOTE: Deferred import, the model depends on this module
		from .model import HTTPBodyFile

		p: Path = path if isinstance(path, Path) else Path(path)
		try:
			f = open(p, "rb")
		except OSError:
			return self.fail("cannot open file")
		try:
			stats = os.fstat(f.fileno())
		except OSError:
			f.close()
			return self.fail("cannot open file")
		size: int = stats.st_size
		base_headers: dict[str, str] = {
			"Last-Modified": httpdate(stats.st_mtime),
			"Accept-Ranges": "bytes",
		}
		if headers:
			base_headers |= headers
		match checkPreconditions(
			self.method,
			stats.st_mtime,
			ifModifiedSince=self.header("If-Modified-Since"),
			ifUnmodifiedSince=self.header("If-Unmodified-Since"),
		):
			case Precondition.NotModified:
				f.close()
				return self.notModified({"Last-Modified": base_headers["Last-Modified"]})
			case Precondition.Failed:
				f.close()
				return self.error(412)
		content_type: str = contentType or getContentType(p)
		range_header: str | None = self.header("Range")
		if range_header and matchesIfRange(self.header("If-Range"), stats.st_mtime):
			try:
				ranges = parseRange(range_header, size)
			except RangeNotSatisfiable as e:
				f.close()
				return self.error(
					416, content=str(e), headers={"Content-Range": f"bytes */{size}"}
				)
			# Multiple ranges are not supported, we send the whole content
			if len(ranges) == 1:
				r = ranges[0]
				return self.respond(
					content=HTTPBodyFile(p, r.start, r.length, f),
					contentType=content_type,
					status=206,
					headers=base_headers | {"Content-Range": r.contentRange(size)},
				)
		return self.respond(
			content=HTTPBodyFile(p, 0, size, f),
			contentType=content_type,
			headers=base_headers,
		)

	def respondEmpty(self, status: int, headers: dict[str, str] | None = None) -> T:
		return self.respond(content=None, status=status, headers=headers)


# EOF
