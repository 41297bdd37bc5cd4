import time
from typing import NamedTuple

from .files import human

# Throughput is expressed in binary megabytes
MB: int = 1024 * 1024

# Transfers that complete within the clock resolution still get a rate
MIN_ELAPSED: float = 0.000001


class TransferReport(NamedTuple):
	"""Summarizes a completed (or interrupted) transfer."""

	name: str
	bytesSent: int
	elapsed: float
	throughput: float

	@staticmethod
	def Make(name: str, bytesSent: int, started: float) -> "TransferReport":
		"""Creates a report for `bytesSent` bytes sent since `started`, a
		`time.monotonic()` value."""
		elapsed: float = max(time.monotonic() - started, MIN_ELAPSED)
		return TransferReport(name, bytesSent, elapsed, bytesSent / MB / elapsed)

	def asJSON(self) -> dict[str, str | int | float]:
		return {
			"file": self.name,
			"bytes_sent": self.bytesSent,
			"mb_per_s": self.throughput,
			"duration_s": self.elapsed,
		}

	def __str__(self) -> str:
		return f"{self.name} transferred {human(self.bytesSent)} in {self.elapsed:.2f}s ({self.throughput:.2f} MB/s)"


# EOF
