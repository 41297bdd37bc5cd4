import pytest

from fileserver.http.ranges import (
	ByteRange,
	Precondition,
	RangeNotSatisfiable,
	checkPreconditions,
	httpdate,
	matchesIfRange,
	parseRange,
)

MTIME: float = 1_700_000_000.5


def test_parse_single_range() -> None:
	assert parseRange("bytes=0-99", 500) == [ByteRange(0, 99)]
	assert parseRange("bytes=0-99", 500)[0].length == 100
	assert parseRange("bytes=0-99", 500)[0].contentRange(500) == "bytes 0-99/500"


def test_parse_open_and_suffix_ranges() -> None:
	assert parseRange("bytes=400-", 500) == [ByteRange(400, 499)]
	assert parseRange("bytes=-100", 500) == [ByteRange(400, 499)]
	assert parseRange("bytes=-1000", 500) == [ByteRange(0, 499)]


def test_parse_clamps_end() -> None:
	assert parseRange("bytes=450-1000", 500) == [ByteRange(450, 499)]


def test_parse_multiple_ranges() -> None:
	assert parseRange("bytes=0-9, 20-29", 500) == [ByteRange(0, 9), ByteRange(20, 29)]


@pytest.mark.parametrize(
	"header",
	[
		"bytes=1000-1099",
		"bytes=500-",
		"bytes=abc",
		"bytes=10-5",
		"items=0-10",
		"bytes=",
		"bytes=-0",
	],
)
def test_unsatisfiable(header: str) -> None:
	with pytest.raises(RangeNotSatisfiable):
		parseRange(header, 500)


def test_preconditions() -> None:
	assert checkPreconditions("GET", MTIME) is Precondition.Proceed
	assert (
		checkPreconditions("GET", MTIME, ifModifiedSince=httpdate(MTIME))
		is Precondition.NotModified
	)
	assert (
		checkPreconditions("GET", MTIME, ifModifiedSince=httpdate(MTIME - 60))
		is Precondition.Proceed
	)
	assert (
		checkPreconditions("GET", MTIME, ifUnmodifiedSince=httpdate(MTIME - 60))
		is Precondition.Failed
	)
	assert (
		checkPreconditions("GET", MTIME, ifUnmodifiedSince=httpdate(MTIME))
		is Precondition.Proceed
	)
	# Unparseable dates are ignored
	assert (
		checkPreconditions("GET", MTIME, ifModifiedSince="yesterday")
		is Precondition.Proceed
	)


def test_if_range() -> None:
	assert matchesIfRange(None, MTIME)
	assert matchesIfRange(httpdate(MTIME), MTIME)
	assert not matchesIfRange(httpdate(MTIME - 60), MTIME)
	assert not matchesIfRange('"some-etag"', MTIME)
	assert not matchesIfRange('W/"weak"', MTIME)


# EOF
