import os
import mimetypes
from pathlib import Path
from typing import Iterator, NamedTuple

mimetypes.init()

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

# Extensions the standard registry gets wrong or does not know about
MIME_TYPES: dict[str, str] = dict(
	mkv="video/x-matroska",
	m2ts="video/mp2t",
	ts="video/mp2t",
	iso="application/x-iso9660-image",
)

# Files the speed test picks when no source is given
MEDIA_EXTENSIONS: frozenset[str] = frozenset((".mkv", ".mp4", ".ts", ".m2ts", ".iso"))

# Bounds the number of directories visited when looking for media
SCAN_LIMIT: int = 100_000

SIZE_UNITS: str = "KMGTPE"


class DirectoryEntry(NamedTuple):
	name: str
	size: int


def stats(path: Path) -> os.stat_result | None:
	"""Returns the stats of `path`, or `None` when it can't be stat'ed, for
	any reason (missing, name too long, not searchable)."""
	try:
		return os.stat(path)
	except OSError:
		return None


def contentType(path: Path | str, default: str = DEFAULT_CONTENT_TYPE) -> str:
	"""Guesses the content type from the extension of the given path"""
	name = os.path.basename(str(path)).lower()
	ext = name.rsplit(".", 1)[-1] if "." in name else ""
	return (
		res
		if (res := MIME_TYPES.get(ext))
		else mimetypes.guess_type(name)[0] or default
	)


def human(size: int) -> str:
	"""Formats a byte count using binary units: `1536` is `1.5 KB`."""
	if size < 1024:
		return f"{size} B"
	div: int = 1024
	exp: int = 0
	while size // div >= 1024 and exp < len(SIZE_UNITS) - 1:
		div *= 1024
		exp += 1
	return f"{size / div:.1f} {SIZE_UNITS[exp]}B"


def listdir(path: Path) -> list[DirectoryEntry]:
	"""Lists the immediate children of `path` in enumeration order. Raises
	`OSError` when the directory can't be opened or read."""
	res: list[DirectoryEntry] = []
	with os.scandir(path) as entries:
		for e in entries:
			try:
				size = e.stat().st_size
			except OSError:
				# Dangling symlink, or removed while listing
				size = 0
			res.append(DirectoryEntry(e.name, size))
	return res


def scandir(path: Path) -> Iterator[os.DirEntry[str]]:
	"""Iterates on the entries of `path` sorted by name, as a list so that the
	directory handle is released right away."""
	with os.scandir(path) as it:
		return iter(sorted(it, key=lambda _: _.name))


def iterfiles(root: Path, limit: int = SCAN_LIMIT) -> Iterator[Path]:
	"""Depth-first walk of the files under `root`, in lexical order within each
	directory. Directories are entered at most once (by device and inode),
	and at most `limit` of them, so that symlink cycles terminate."""
	try:
		stats = root.stat()
		stack: list[Iterator[os.DirEntry[str]]] = [scandir(root)]
	except OSError:
		return
	visited: set[tuple[int, int]] = {(stats.st_dev, stats.st_ino)}
	while stack:
		child = next(stack[-1], None)
		if child is None:
			stack.pop()
			continue
		try:
			if not child.is_dir():
				yield Path(child.path)
				continue
			stats = child.stat()
		except OSError:
			continue
		key = (stats.st_dev, stats.st_ino)
		if key in visited or len(visited) >= limit:
			continue
		visited.add(key)
		try:
			stack.append(scandir(Path(child.path)))
		except OSError:
			continue


def findMedia(root: Path, extensions: frozenset[str] = MEDIA_EXTENSIONS) -> Path | None:
	"""Returns the first file under `root` with one of the given (lowercase)
	extensions, or `None`."""
	for path in iterfiles(root):
		if path.suffix.lower() in extensions:
			return path
	return None


# EOF
