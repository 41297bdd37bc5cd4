import asyncio
import io
from pathlib import Path
from typing import NamedTuple

import pytest

import fileserver.utils.logging as logging
from fileserver.bridge.python import PythonBridge, run
from fileserver.config import ServerConfig
from fileserver.services.files import FileService
from fileserver.services.speedtest import SpeedTestService

DATA: bytes = bytes(range(256)) + bytes(range(244))


class Response(NamedTuple):
	status: int
	headers: dict[str, str]
	body: bytes


def parse(data: bytes) -> Response:
	head, _, body = data.partition(b"\r\n\r\n")
	lines = head.decode("latin-1").split("\r\n")
	headers: dict[str, str] = {}
	for line in lines[1:]:
		k, _, v = line.partition(":")
		headers[k.strip()] = v.strip()
	return Response(int(lines[0].split(" ")[1]), headers, body)


def request(
	bridge: PythonBridge, path: str, method: str = "GET", **headers: str
) -> Response:
	lines = [f"{method} {path} HTTP/1.1", "Host: localhost"] + [
		f"{k.replace('_', '-')}: {v}" for k, v in headers.items()
	]
	raw = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
	return parse(asyncio.run(bridge.request(raw)))


@pytest.fixture
def root(tmp_path: Path) -> Path:
	"""A serving root with a 500 byte file, a nested directory and a file
	whose name needs quoting."""
	assert len(DATA) == 500
	(tmp_path / "data.bin").write_bytes(DATA)
	(tmp_path / "sub").mkdir()
	(tmp_path / "sub" / "clip one.mkv").write_bytes(b"M" * 300)
	(tmp_path / "notes.txt").write_text("hello\n")
	return tmp_path


@pytest.fixture
def config(root: Path) -> ServerConfig:
	return ServerConfig.Make(root, host="127.0.0.1", port=0, speedBytes=100)


@pytest.fixture
def bridge(config: ServerConfig) -> PythonBridge:
	return run(FileService(config), SpeedTestService(config))


@pytest.fixture
def out(monkeypatch: pytest.MonkeyPatch) -> io.StringIO:
	"""Captures the operator output (transfer reports, banner)."""
	buffer = io.StringIO()
	monkeypatch.setattr(logging, "OUT", buffer)
	return buffer


@pytest.fixture
def err(monkeypatch: pytest.MonkeyPatch) -> io.StringIO:
	buffer = io.StringIO()
	monkeypatch.setattr(logging, "ERR", buffer)
	return buffer


# EOF
