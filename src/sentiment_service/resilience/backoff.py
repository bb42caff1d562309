"""
Exponential backoff with jitter for backend retries.

delay(retry) = min(max_delay, base * 2 ** (retry - 1)) + uniform(0, jitter)
"""

import random
from dataclasses import dataclass, field
from typing import Callable


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Delay schedule between retry attempts.

    Attributes:
        base: Delay before the first retry, in seconds
        max_delay: Cap on the exponential part
        jitter: Upper bound of the uniform random delay added on top
    """

    base: float = 0.25
    max_delay: float = 4.0
    jitter: float = 0.25
    random_fn: Callable[[float, float], float] = field(default=random.uniform, repr=False)

    def __post_init__(self) -> None:
        if self.base < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("backoff parameters must be >= 0")

    def delay(self, retry: int) -> float:
        """
        Delay before the given retry.

        Args:
            retry: 1 for the first retry, 2 for the second, ...
        """
        if retry < 1:
            raise ValueError("retry must be >= 1")
        exponential = min(self.max_delay, self.base * (2 ** (retry - 1)))
        extra = self.random_fn(0.0, self.jitter) if self.jitter > 0 else 0.0
        return exponential + extra
