import asyncio
import http.client
import io
import threading
import time
from pathlib import Path
from typing import Iterator

import pytest

from fileserver.config import HOST, PORT, ServerConfig
from fileserver.model import mount
from fileserver.server import AIOSocketServer, ServerOptions
from fileserver.services.files import FileService
from fileserver.services.speedtest import SpeedTestService

from conftest import DATA


@pytest.fixture
def server(config: ServerConfig, out: io.StringIO) -> Iterator[tuple[str, int]]:
	"""Runs the socket server in a background thread."""
	stopped = threading.Event()
	options = ServerOptions(
		host="127.0.0.1",
		port=0,
		polling=0.05,
		logRequests=False,
		condition=lambda: not stopped.is_set(),
	)
	app = mount(FileService(config), SpeedTestService(config))
	sock = AIOSocketServer.Bind(options)
	address = sock.getsockname()[:2]
	thread = threading.Thread(
		target=asyncio.run, args=(AIOSocketServer.Serve(app, sock, options),)
	)
	thread.start()
	try:
		yield address
	finally:
		stopped.set()
		thread.join(timeout=5)


def test_default_options() -> None:
	assert ServerOptions().host == HOST
	assert ServerOptions().port == PORT


def test_keep_alive(server: tuple[str, int]) -> None:
	conn = http.client.HTTPConnection(*server, timeout=5)
	try:
		conn.request("GET", "/data.bin")
		res = conn.getresponse()
		assert res.status == 200
		assert res.read() == DATA
		# Same connection, sent with sendfile
		conn.request("GET", "/data.bin", headers={"Range": "bytes=100-199"})
		res = conn.getresponse()
		assert res.status == 206
		assert res.getheader("Content-Range") == "bytes 100-199/500"
		assert res.read() == DATA[100:200]
		conn.request("HEAD", "/notes.txt")
		res = conn.getresponse()
		assert res.getheader("Content-Length") == "6"
		assert res.read() == b""
	finally:
		conn.close()


def test_speedtest(server: tuple[str, int], out: io.StringIO) -> None:
	conn = http.client.HTTPConnection(*server, timeout=5)
	try:
		conn.request("GET", "/speedtest")
		res = conn.getresponse()
		assert res.status == 200
		assert res.read() == b"M" * 100
	finally:
		conn.close()
	# The report is logged once the server resumes the stream after the
	# last chunk, which can be after the client got it.
	deadline = time.monotonic() + 5
	while "bytes_sent" not in out.getvalue() and time.monotonic() < deadline:
		time.sleep(0.01)
	assert '"bytes_sent": 100' in out.getvalue()


def test_listing(server: tuple[str, int], root: Path) -> None:
	conn = http.client.HTTPConnection(*server, timeout=5)
	try:
		conn.request("GET", "/sub/")
		res = conn.getresponse()
		assert res.status == 200
		assert b"clip%20one.mkv" in res.read()
	finally:
		conn.close()


# EOF
