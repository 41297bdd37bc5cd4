from datetime import datetime, timezone
from email.utils import formatdate, parsedate_to_datetime
from enum import Enum
from typing import NamedTuple

# --
# == Byte ranges and preconditions
#
# Implements the subset of RFC 9110 (sections 13 and 14) that is needed to
# serve a single file: one byte range per request, `If-Range` and the
# modification date preconditions. Entity tags are never produced, so
# any `If-Range` holding an entity tag fails to match.
#
# SEE: https://www.rfc-editor.org/rfc/rfc9110#name-range-requests


class RangeNotSatisfiable(ValueError):
	"""The `Range` header is malformed or does not overlap the content."""


class Precondition(Enum):
	Proceed = 0
	NotModified = 304
	Failed = 412


class ByteRange(NamedTuple):
	"""An inclusive range of bytes, as in `bytes=start-end`."""

	start: int
	end: int

	@property
	def length(self) -> int:
		return self.end - self.start + 1

	def contentRange(self, size: int) -> str:
		return f"bytes {self.start}-{self.end}/{size}"


def httpdate(timestamp: float) -> str:
	return formatdate(timestamp, usegmt=True)


def parseHTTPDate(value: str | None) -> datetime | None:
	if not value:
		return None
	try:
		res = parsedate_to_datetime(value)
	except (TypeError, ValueError):
		return None
	return res if res.tzinfo else res.replace(tzinfo=timezone.utc)


def modified(timestamp: float) -> datetime:
	"""HTTP dates have a one second resolution, so the file modification
	time is truncated before comparisons."""
	return datetime.fromtimestamp(int(timestamp), timezone.utc)


def parseRange(header: str, size: int) -> list[ByteRange]:
	"""Parses a `Range` header for content of the given `size`, returning
	the (clamped) ranges that overlap the content. Raises `RangeNotSatisfiable`
	when the header is malformed or when no range overlaps."""
	unit, sep, spec = header.partition("=")
	if not sep or unit.strip().lower() != "bytes":
		raise RangeNotSatisfiable(f"Invalid range: {header}")
	res: list[ByteRange] = []
	no_overlap: bool = False
	for item in spec.split(","):
		item = item.strip()
		if not item:
			continue
		first, sep, last = item.partition("-")
		first, last = first.strip(), last.strip()
		if (
			not sep
			or not (first or last)
			or any(_ and not _.isdigit() for _ in (first, last))
		):
			raise RangeNotSatisfiable(f"Invalid range: {item}")
		if not first:
			# A suffix range, `-N` is the last N bytes
			suffix = int(last)
			if suffix == 0 or size == 0:
				no_overlap = True
				continue
			res.append(ByteRange(max(0, size - suffix), size - 1))
		else:
			start = int(first)
			if start >= size:
				no_overlap = True
				continue
			end = size - 1 if not last else int(last)
			if end < start:
				raise RangeNotSatisfiable(f"Invalid range: {item}")
			res.append(ByteRange(start, min(end, size - 1)))
	if not res:
		raise RangeNotSatisfiable(
			f"No overlap: {header}" if no_overlap else f"Invalid range: {header}"
		)
	return res


def checkPreconditions(
	method: str,
	mtime: float,
	*,
	ifModifiedSince: str | None = None,
	ifUnmodifiedSince: str | None = None,
) -> Precondition:
	"""Evaluates the date preconditions against the modification time."""
	last_modified = modified(mtime)
	if t := parseHTTPDate(ifUnmodifiedSince):
		if last_modified > t:
			return Precondition.Failed
	if method in ("GET", "HEAD") and (t := parseHTTPDate(ifModifiedSince)):
		if last_modified <= t:
			return Precondition.NotModified
	return Precondition.Proceed


def matchesIfRange(ifRange: str | None, mtime: float) -> bool:
	"""Tells if a range request should be honoured given its `If-Range`."""
	if not ifRange:
		return True
	value = ifRange.strip()
	if value.startswith('"') or value.startswith("W/"):
		return False
	t = parseHTTPDate(value)
	return t is not None and t == modified(mtime)


# EOF
