from os import getenv
from pathlib import Path
from typing import NamedTuple

# Files and speed test streams are copied using buffers of that size
CHUNK_SIZE: int = 1 << 20

DEFAULT_SPEED_BYTES: int = 50 << 20

ROOT: str = getenv("FILESERVER_DIR", ".")

# By default we want the server to be reachable from the local network
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

PORT: int = int(getenv("PORT", 8080))

SPEED_BYTES: int = int(getenv("FILESERVER_SPEEDBYTES", DEFAULT_SPEED_BYTES))

LOG_REQUESTS: bool = getenv("FILESERVER_LOG_REQUESTS", "1") == "1"


class ServerConfig(NamedTuple):
	"""The process-wide configuration, built once at startup and handed to
	each service."""

	root: Path
	host: str = HOST
	port: int = PORT
	speedBytes: int = SPEED_BYTES

	@staticmethod
	def Make(
		root: Path | str = ROOT,
		*,
		host: str = HOST,
		port: int = PORT,
		speedBytes: int = SPEED_BYTES,
	) -> "ServerConfig":
		return ServerConfig(
			root=Path(root).absolute(),
			host=host,
			port=port,
			speedBytes=speedBytes if speedBytes > 0 else DEFAULT_SPEED_BYTES,
		)

	@property
	def addr(self) -> str:
		return f"{self.host}:{self.port}"


def parseAddr(addr: str) -> tuple[str, int]:
	"""Parses `host:port`, `:port` or `host` into a host and port."""
	host, sep, port = addr.rpartition(":")
	if not sep:
		return addr or HOST, PORT
	try:
		return host or HOST, int(port)
	except ValueError:
		raise ValueError(f"Invalid port in address: {addr}")


# EOF
