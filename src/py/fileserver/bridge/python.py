from typing import Literal

from ..bridge import Bridge, components
from ..http.model import HTTPBodyWriter, HTTPRequest
from ..http.parser import HTTPParser
from ..model import Application, Service
from ..server import AIOSocketServer


class BytesBodyWriter(HTTPBodyWriter):
	"""Accumulates whatever is written, in memory."""

	def __init__(self) -> None:
		super().__init__()
		self.chunks: list[bytes] = []

	async def _writeBytes(self, chunk: bytes | None | Literal[False]) -> bool:
		if chunk:
			self.chunks.append(chunk)
		return True

	def flush(self) -> bytes:
		res = b"".join(self.chunks)
		self.chunks.clear()
		return res


class PythonBridge(Bridge):
	"""Processes raw HTTP requests in-process, returning the raw response
	as it would be sent on the wire."""

	async def request(self, data: bytes) -> bytes:
		parser = HTTPParser()
		writer = BytesBodyWriter()
		for atom in parser.feed(data):
			if isinstance(atom, HTTPRequest):
				await AIOSocketServer.SendResponse(atom, self.application, writer)
		return writer.flush()


def run(
	*services: Application | Service,
) -> PythonBridge:
	"""Runs the given services/application in-process."""
	return PythonBridge(components(*services))


# EOF
