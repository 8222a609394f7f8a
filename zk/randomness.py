"""
Cryptographically secure randomness for commitments and challenges.

Every draw comes from the operating system CSPRNG. A source that cannot
deliver the requested bytes raises EntropyError; callers never fall back to a
non-cryptographic generator.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union, BinaryIO

from .errors import EntropyError

logger = logging.getLogger(__name__)


class EntropySource:
    """Handle to a secure randomness source"""

    name = "abstract"

    def read(self, num_bytes: int) -> bytes:
        raise NotImplementedError

    def _fail(self, message: str) -> EntropyError:
        logger.critical(message)
        return EntropyError(message)

    def _check_length(self, data: bytes, num_bytes: int) -> bytes:
        if len(data) != num_bytes:
            raise self._fail(
                f"Short read from {self.name}: wanted {num_bytes} bytes, got {len(data)}")
        return data


class OSEntropySource(EntropySource):
    """Reads from the platform CSPRNG via os.urandom"""

    name = "os.urandom"

    def read(self, num_bytes: int) -> bytes:
        try:
            data = os.urandom(num_bytes)
        except (OSError, NotImplementedError) as e:
            raise self._fail(f"Entropy source {self.name} unavailable: {e}") from e
        return self._check_length(data, num_bytes)


class DeviceEntropySource(EntropySource):
    """
    Reads fixed-size blocks from a random device such as /dev/urandom.

    The device is opened for each read and closed on exit from the block,
    so one instance can be shared between worker threads.
    """

    def __init__(self, path: Union[str, Path] = "/dev/urandom"):
        self.path = Path(path)
        self.name = str(self.path)

    @contextmanager
    def _open(self) -> Iterator[BinaryIO]:
        try:
            handle = open(self.path, "rb", buffering=0)
        except OSError as e:
            raise self._fail(f"Cannot open {self.path}: {e}") from e
        try:
            yield handle
        finally:
            handle.close()

    def read(self, num_bytes: int) -> bytes:
        with self._open() as handle:
            try:
                data = handle.read(num_bytes)
            except OSError as e:
                raise self._fail(f"Read from {self.path} failed: {e}") from e
        return self._check_length(data or b"", num_bytes)


_default_source = OSEntropySource()


def default_source() -> EntropySource:
    return _default_source


def random_below(bound: int, source: Optional[EntropySource] = None) -> int:
    """
    Uniform integer in [0, bound) by rejection sampling.

    Draws just enough bytes to cover bound-1, masks off the excess high bits
    and retries on values >= bound. Each attempt succeeds with probability
    above 1/2.
    """
    if bound < 1:
        raise ValueError(f"Bound must be positive, got {bound}")
    if bound == 1:
        return 0

    source = source or _default_source
    bits = (bound - 1).bit_length()
    num_bytes = (bits + 7) // 8
    mask = (1 << bits) - 1

    while True:
        candidate = int.from_bytes(source.read(num_bytes), "big") & mask
        if candidate < bound:
            return candidate


def random_bit(source: Optional[EntropySource] = None) -> int:
    """Single unpredictable bit, used as the verifier challenge"""
    return random_below(2, source)
