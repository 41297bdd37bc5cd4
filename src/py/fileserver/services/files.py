import os
import posixpath
import time
from stat import S_ISDIR
from pathlib import Path
from typing import BinaryIO, Iterator
from urllib.parse import quote

from ..config import CHUNK_SIZE, ServerConfig
from ..decorators import on
from ..http.model import HTTPRequest, HTTPResponse
from ..http.ranges import httpdate
from ..model import Service
from ..utils.files import DirectoryEntry, contentType, human, listdir, stats
from ..utils.htmpl import H, Node, html
from ..utils.logging import metric
from ..utils.transfer import TransferReport

FILE_CSS: str = """
:root {
    font-family: sans-serif;
    font-size: 14px;
    line-height: 1.35em;
    padding: 20px;
    background: #F0F0F0;
}
ul {
    padding: 0px 20px;
    margin: 1.25em 0em;
}
li {
    padding: 0px 10px;
    margin: 0.5em 0em;
}
small {
    color: #808080;
}
"""


def clean(path: str) -> list[str]:
	"""Lexically cleans the given request path and returns its segments,
	`.` and `..` are resolved so that the result can't go above the root."""
	# NOTE: `normpath` keeps a double leading slash, which is fine as we
	# drop empty segments.
	return [_ for _ in posixpath.normpath(f"/{path}").split("/") if _]


def resolve(root: Path, path: str) -> Path:
	"""Maps a request path to a path within `root`, without accessing
	the filesystem."""
	segments = clean(path)
	return root.joinpath(*segments) if segments else root


def copy(
	file: BinaryIO, name: str, size: int = CHUNK_SIZE
) -> Iterator[bytes]:
	"""Streams the given file, logging a transfer report once all of it
	has been consumed. The file is closed when the generator is."""
	sent: int = 0
	started: float = time.monotonic()
	with file:
		while chunk := file.read(size):
			yield chunk
			sent += len(chunk)
	metric(str(TransferReport.Make(name, sent, started)), origin="files")


class FileService(Service):
	"""Serves directory listings and files from the configured root."""

	def __init__(self, config: ServerConfig):
		super().__init__()
		self.config: ServerConfig = config
		self.root: Path = config.root

	def resolvePath(self, path: str) -> Path:
		return resolve(self.root, path)

	@on(GET_HEAD=("/", "/{path:any}"))
	def read(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		local_path = self.resolvePath(path)
		if not (st := stats(local_path)):
			return request.notFound()
		elif S_ISDIR(st.st_mode):
			return self.renderDir(
				request,
				"/" + "/".join(clean(path)),
				local_path,
				format=request.param("format", "html") or "html",
			)
		else:
			return self.renderFile(request, local_path)

	def renderDir(
		self,
		request: HTTPRequest,
		path: str,
		localPath: Path,
		format: str = "html",
	) -> HTTPResponse:
		try:
			entries: list[DirectoryEntry] = listdir(localPath)
		except OSError:
			return request.fail("cannot read dir")
		# We support the JSON format to list the contents of a directory
		if format == "json":
			return request.returns(entries)
		items: list[Node] = [
			H.li(
				H.a(_.name, href=quote(posixpath.join(path, _.name))),
				" ",
				H.small(human(_.size)),
			)
			for _ in entries
		]
		return request.respondHTML(
			"".join(
				html(
					H.html(
						H.head(
							H.meta(charset="utf-8"),
							H.title(path),
							H.style(FILE_CSS),
						),
						H.body(H.h1(path), H.ul(*items)),
					),
					doctype="html",
				)
			)
		)

	def renderFile(self, request: HTTPRequest, localPath: Path) -> HTTPResponse:
		"""Serves the file, using byte ranges when the request has a `Range`
		header, and otherwise streaming all of it and logging a transfer
		report."""
		if request.header("Range"):
			return request.respondFile(localPath)
		try:
			f = open(localPath, "rb")
		except OSError:
			return request.fail("cannot open file")
		try:
			st = os.fstat(f.fileno())
		except OSError:
			f.close()
			return request.fail("cannot open file")
		res = request.respond(
			copy(f, localPath.name),
			contentType=contentType(localPath),
			contentLength=st.st_size,
			headers={
				"Accept-Ranges": "bytes",
				"Last-Modified": httpdate(st.st_mtime),
			},
		)
		# The stream closes the file once consumed, but a HEAD or a failed
		# response never consumes it.
		return res.onClose(lambda _: f.close())


# EOF
