from enum import Enum
from typing import NamedTuple
import resource


class LimitType(Enum):
	Files = resource.RLIMIT_NOFILE


REASONABLE_LIMITS: dict[LimitType, int] = {
	# Each connection holds a socket plus at most one file or directory handle
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
	"""Raises the soft limit of the given resource towards its hard limit,
	returning the new soft limit or `False` when it could not be changed."""
	lm = limit(scope)
	try:
		maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
		if lm.hard == resource.RLIM_INFINITY:
			if not maximum:
				return False
			target = maximum
		else:
			target = int(lm.soft + ratio * (lm.hard - lm.soft))
		# Darwin has really high hard limits that will lead to OverflowErrors.
		if maximum:
			target = min(maximum, target)
		resource.setrlimit(scope.value, (target, lm.hard))
		return target
	except ValueError:
		return False
	except OSError:
		return False


# EOF
