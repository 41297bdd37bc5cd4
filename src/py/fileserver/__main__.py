import argparse
import sys
from pathlib import Path

from .config import HOST, PORT, ROOT, SPEED_BYTES, ServerConfig, parseAddr
from .server import run
from .services.files import FileService
from .services.speedtest import SpeedTestService
from .utils.logging import error


def main(args: list[str] | None = None) -> int:
	"""Command line entry point, returns the process exit status."""
	parser = argparse.ArgumentParser(
		prog="fileserver",
		description="Serves a directory over HTTP, with a /speedtest endpoint",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	parser.add_argument(
		"-d",
		"--dir",
		action="store",
		dest="dir",
		help="Directory to serve",
		default=ROOT,
	)
	parser.add_argument(
		"-a",
		"--addr",
		action="store",
		dest="addr",
		help="Address to listen on, as HOST:PORT",
		default=f"{HOST}:{PORT}",
	)
	parser.add_argument(
		"-s",
		"--speedbytes",
		action="store",
		dest="speedBytes",
		type=int,
		help="Bytes to stream in /speedtest",
		default=SPEED_BYTES,
	)
	options = parser.parse_args(args=args)

	root = Path(options.dir)
	if not root.is_dir():
		error("invalid dir", 1, Path=str(root))
		return 1
	try:
		host, port = parseAddr(options.addr)
	except ValueError as e:
		error("invalid addr", 1, Reason=str(e))
		return 1
	config = ServerConfig.Make(
		root, host=host, port=port, speedBytes=options.speedBytes
	)
	try:
		run(FileService(config), SpeedTestService(config), config=config)
	except OSError as e:
		error(f"listen error: {e}", 1, Addr=config.addr)
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main(sys.argv[1:]))
# EOF
