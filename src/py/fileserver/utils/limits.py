from typing import NamedTuple
from enum import Enum
import resource


class LimitType(Enum):
	Files = resource.RLIMIT_NOFILE


REASONABLE_LIMITS: dict[LimitType, int] = {
	# Each streamed file and each client socket holds a descriptor
	LimitType.Files: 10 * 10240,
}


class Limit(NamedTuple):
	type: LimitType
	soft: int
	hard: int


def limit(scope: LimitType) -> Limit:
	return Limit(scope, *resource.getrlimit(scope.value))


def unlimit(
	scope: LimitType, ratio: float = 1.0, *, maximum: int | None = 0
) -> int | bool:
	"""Raises the soft limit of `scope` towards its hard limit, capped by
	`maximum` (or the reasonable default when `0`). Returns the new soft limit,
	or `False` when the system refused."""
	lm = limit(scope)
	if lm.soft == resource.RLIM_INFINITY:
		return lm.soft
	hard: int = (
		lm.hard
		if lm.hard != resource.RLIM_INFINITY
		else (maximum or REASONABLE_LIMITS[scope])
	)
	try:
		target = int(lm.soft + ratio * (hard - lm.soft))
		maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
		if maximum:
			target = min(maximum, target)
		target = max(target, lm.soft)
		resource.setrlimit(scope.value, (target, lm.hard))
		return target
	except ValueError:
		return False
	except OSError:
		return False


# EOF
