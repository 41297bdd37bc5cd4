import io
import socket
from pathlib import Path

import pytest

from fileserver.__main__ import main
from fileserver.config import parseAddr


def test_invalid_dir(tmp_path: Path, err: io.StringIO) -> None:
	assert main(["--dir", str(tmp_path / "missing")]) == 1
	assert "invalid dir" in err.getvalue()
	(tmp_path / "file").write_text("x")
	assert main(["-d", str(tmp_path / "file")]) == 1


def test_listen_error(tmp_path: Path, err: io.StringIO, out: io.StringIO) -> None:
	with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
		busy.bind(("127.0.0.1", 0))
		busy.listen(1)
		port = busy.getsockname()[1]
		assert main(["-d", str(tmp_path), "-a", f"127.0.0.1:{port}"]) == 1
	assert "listen error" in err.getvalue()
	assert out.getvalue() == ""


def test_parse_addr() -> None:
	assert parseAddr("127.0.0.1:9000") == ("127.0.0.1", 9000)
	assert parseAddr(":9000") == ("0.0.0.0", 9000)
	with pytest.raises(ValueError):
		parseAddr("localhost:http")


# EOF
