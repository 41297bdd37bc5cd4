import os
import time
from stat import S_ISDIR
from pathlib import Path
from typing import BinaryIO, Iterator

from ..config import CHUNK_SIZE, ServerConfig
from ..decorators import on
from ..http.model import HTTPRequest, HTTPResponse
from ..model import Service
from ..utils.files import findMedia, stats
from ..utils.json import json
from ..utils.logging import metric
from ..utils.transfer import TransferReport
from .files import resolve


def stream(
	file: BinaryIO, name: str, budget: int, size: int = CHUNK_SIZE
) -> Iterator[bytes]:
	"""Streams at most `budget` bytes of the given file. The report is logged
	whenever the stream ends, including when the client went away."""
	sent: int = 0
	started: float = time.monotonic()
	try:
		with file:
			while sent < budget:
				try:
					chunk = file.read(min(size, budget - sent))
				except OSError:
					break
				if not chunk:
					break
				yield chunk
				sent += len(chunk)
	finally:
		report = TransferReport.Make(name, sent, started)
		metric(json(report.asJSON()).decode(), origin="speedtest")


class SpeedTestService(Service):
	"""Measures the throughput to the client by streaming a bounded amount
	of bytes from a media file."""

	def __init__(self, config: ServerConfig):
		super().__init__()
		self.config: ServerConfig = config

	def source(self, request: HTTPRequest) -> Path | None:
		"""Returns the file given as the `file` parameter when it exists,
		or the first media file found under the root."""
		if name := request.param("file"):
			path = resolve(self.config.root, name)
			if (st := stats(path)) and not S_ISDIR(st.st_mode):
				return path
		return findMedia(self.config.root)

	@on(priority=1, GET_HEAD="/speedtest")
	def speedtest(self, request: HTTPRequest) -> HTTPResponse:
		path = self.source(request)
		if not path:
			return request.notFound("no media file found for speedtest")
		try:
			f = open(path, "rb")
		except OSError:
			return request.fail("cannot open file")
		try:
			size: int = os.fstat(f.fileno()).st_size
		except OSError:
			f.close()
			return request.fail("cannot open file")
		budget: int = min(self.config.speedBytes, size)
		res = request.respond(
			stream(f, path.name, budget),
			contentType="application/octet-stream",
			contentLength=budget,
			headers={"Accept-Ranges": "bytes"},
		)
		return res.onClose(lambda _: f.close())


# EOF
