"""
_accumulator.py
===============
The global counter that every block of a triangle-counting launch adds into.

The accumulator is explicit state, passed by reference into a launch.  It is
never zeroed implicitly: ``reset()`` is the zero-initializer step and must run
before a launch whose result should not include earlier launches.
"""

import threading

import numpy as np


class Accumulator:
    """
    A single int64 counter updated only through atomic adds.

    The value lives in a one-element numpy buffer.  Host-side adds are
    serialized by a lock; a CUDA launch adds into its own zeroed device buffer
    and is folded in afterwards by ``add_from_device``.

    Attributes
    ----------
    n_updates : int
        Number of ``add`` calls since the last ``reset``.

    Examples
    --------
    >>> acc = Accumulator()
    >>> acc.add(3); acc.add(4)
    >>> acc.value
    7
    >>> acc.reset()
    >>> acc.value
    0
    """

    def __init__(self) -> None:
        self._buffer = np.zeros(1, dtype=np.int64)
        self._lock = threading.Lock()
        self.n_updates = 0

    @property
    def buffer(self) -> np.ndarray:
        """The one-element int64 host buffer holding the count."""
        return self._buffer

    @property
    def value(self) -> int:
        return int(self._buffer[0])

    def reset(self) -> None:
        """Zero the counter."""
        with self._lock:
            self._buffer[0] = 0
            self.n_updates = 0

    def add(self, amount: int) -> None:
        """Atomically add ``amount`` to the counter."""
        with self._lock:
            self._buffer[0] += amount
            self.n_updates += 1

    def add_from_device(self, device_buffer, n_updates: int) -> None:
        """
        Fold a launch's device-side partial into the counter.

        The kernel adds into its own zeroed device buffer, never into a copy
        of this one, so host-side adds made during the launch are kept.

        Parameters
        ----------
        device_buffer : numba.cuda.DeviceNDArray
            One-element int64 device array the kernel added into.
        n_updates : int
            Number of atomic adds the launch issued (one per block).
        """
        partial = device_buffer.copy_to_host()
        with self._lock:
            self._buffer[0] += partial[0]
            self.n_updates += n_updates

    def __repr__(self) -> str:
        return f"Accumulator(value={self.value})"
