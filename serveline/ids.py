"""Fast, non-cryptographic random identifiers."""

import random
import threading

_local = threading.local()


def _thread_rng() -> random.Random:
    rng = getattr(_local, "rng", None)
    if rng is None:
        rng = random.Random()
        _local.rng = rng
    return rng


def next_insecure_rand_u64() -> int:
    """Return a random 64-bit unsigned integer from a per-thread generator.

    Not suitable for secrets.
    """
    return _thread_rng().getrandbits(64)