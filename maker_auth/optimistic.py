"""
Compare-and-swap emulation for stores without an atomic update.

The directory offers no conditional write, but removing an attribute value
that is no longer present fails. :func:`compare_and_swap` leans on that: it
reads the current value, asks ``apply`` to replace exactly that value, and
starts over after a short pause whenever either step fails.
"""

import logging
from typing import Callable, Tuple, Type, TypeVar

from retry.api import retry_call

from .exceptions import RetriesExhausted

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Conflict(Exception):
    """One attempt lost a race, or saw the store in an in-between state."""


def compare_and_swap(read: Callable[[], T], apply: Callable[[T], None],
                     tries: int = 10, delay: float = 0.1,
                     conflicts: Tuple[Type[Exception], ...] = (Exception,)) \
        -> T:
    """
    Read a value and conditionally replace it, retrying on conflict.

    Parameters
    ----------
    read : callable
        Returns the current value.
    apply : callable
        Receives the value returned by ``read``, and must fail (raise one of
        ``conflicts``) if the store no longer holds it.
    tries : int
        Maximum number of read/apply rounds.
    delay : float
        Seconds to wait after a failed round.
    conflicts : tuple
        Exception types that mean "try again". Anything else propagates
        immediately.

    Returns
    -------
    object
        The value that was read in the round that succeeded.

    Raises
    ------
    :class:`.RetriesExhausted`
        Raised after ``tries`` failed rounds, chained to the last conflict.

    """
    def _attempt() -> T:
        try:
            current = read()
            apply(current)
        except conflicts as e:
            raise Conflict(f'{type(e).__name__}: {e}') from e
        return current

    try:
        return retry_call(_attempt, exceptions=Conflict, tries=tries,
                          delay=delay, logger=logger)
    except Conflict as e:
        raise RetriesExhausted(f'Gave up after {tries} tries') from e
