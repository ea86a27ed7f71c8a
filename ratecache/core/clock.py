"""Time sources for the rate limiting primitives."""

import time
from typing import Callable

# Zero-argument callable returning seconds as a float. Only differences
# between readings are used, so the epoch is irrelevant.
Clock = Callable[[], float]

monotonic_clock: Clock = time.monotonic
