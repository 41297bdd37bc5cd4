import io
import json
from pathlib import Path
from typing import Any

from fileserver.bridge.python import run
from fileserver.config import DEFAULT_SPEED_BYTES, ServerConfig
from fileserver.services.files import FileService
from fileserver.services.speedtest import SpeedTestService

from conftest import DATA, request


def reports(out: io.StringIO) -> list[dict[str, Any]]:
	return [json.loads(_) for _ in out.getvalue().splitlines()]


def bridgeFor(root: Path, speedBytes: int) -> Any:
	config = ServerConfig.Make(root, speedBytes=speedBytes)
	return run(FileService(config), SpeedTestService(config))


def test_speedtest_discovers_media(root: Path, out: io.StringIO) -> None:
	bridge = bridgeFor(root, 100)
	res = request(bridge, "/speedtest")
	assert res.status == 200
	assert res.headers["Content-Type"] == "application/octet-stream"
	assert res.headers["Content-Length"] == "100"
	assert res.body == b"M" * 100
	(report,) = reports(out)
	assert report["file"] == "clip one.mkv"
	assert report["bytes_sent"] == 100
	assert report["duration_s"] > 0
	assert report["mb_per_s"] >= 0


def test_speedtest_given_file(root: Path, out: io.StringIO) -> None:
	bridge = bridgeFor(root, 100)
	res = request(bridge, "/speedtest?file=data.bin")
	assert res.body == DATA[:100]
	res = request(bridge, "/speedtest?file=/../notes.txt")
	assert res.headers["Content-Length"] == "6"
	assert res.body == b"hello\n"
	assert [(_["file"], _["bytes_sent"]) for _ in reports(out)] == [
		("data.bin", 100),
		("notes.txt", 6),
	]


def test_speedtest_small_source(root: Path, out: io.StringIO) -> None:
	bridge = bridgeFor(root, 10_000)
	res = request(bridge, "/speedtest?file=sub/clip%20one.mkv")
	assert res.headers["Content-Length"] == "300"
	assert len(res.body) == 300
	assert reports(out)[0]["bytes_sent"] == 300


def test_speedtest_fallback(root: Path, out: io.StringIO) -> None:
	bridge = bridgeFor(root, 100)
	for path in ("/speedtest?file=missing.mkv", "/speedtest?file=sub"):
		res = request(bridge, path)
		assert res.status == 200
		assert res.body == b"M" * 100
	assert [_["file"] for _ in reports(out)] == ["clip one.mkv"] * 2


def test_speedtest_unstatable_file(root: Path, out: io.StringIO) -> None:
	# A name the filesystem rejects falls back to the media scan
	bridge = bridgeFor(root, 100)
	res = request(bridge, "/speedtest?file=" + "a" * 300)
	assert res.status == 200
	assert res.body == b"M" * 100
	assert reports(out)[0]["file"] == "clip one.mkv"


def test_speedtest_no_media(root: Path, out: io.StringIO) -> None:
	(root / "sub" / "clip one.mkv").unlink()
	bridge = bridgeFor(root, 100)
	res = request(bridge, "/speedtest")
	assert res.status == 404
	assert res.body == b"no media file found for speedtest"
	assert out.getvalue() == ""


def test_speedtest_head(root: Path, out: io.StringIO) -> None:
	bridge = bridgeFor(root, 100)
	res = request(bridge, "/speedtest", method="HEAD")
	assert res.status == 200
	assert res.headers["Content-Length"] == "100"
	assert res.body == b""


def test_default_budget(root: Path) -> None:
	assert ServerConfig.Make(root, speedBytes=0).speedBytes == DEFAULT_SPEED_BYTES
	assert ServerConfig.Make(root, speedBytes=-5).speedBytes == DEFAULT_SPEED_BYTES


# EOF
