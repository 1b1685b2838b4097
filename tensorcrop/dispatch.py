import logging
from typing import Any, Callable, Dict

from tensorcrop.errors import UnsupportedRankError

logger = logging.getLogger(__name__)

MAX_RANK = 6
SUPPORTED_RANKS = tuple(range(1, MAX_RANK + 1))


def _specialize(fn: Callable[[Any, int], Any], rank: int) -> Callable[[Any], Any]:
    """Bind ``fn`` to a fixed ``rank``."""
    def kernel(context: Any) -> Any:
        return fn(context, rank)
    kernel.__name__ = f"{getattr(fn, '__name__', 'kernel')}_rank{rank}"
    kernel.rank = rank
    return kernel


class RankDispatcher:
    """
    Route a runtime tensor rank to a rank-specialized kernel.

    The dispatcher holds one entry per supported rank (1 through 6), each a
    copy of ``fn`` with the rank fixed. The entry receives the execution
    context unchanged; the dispatcher itself never allocates or computes.

    Parameters
    ----------
    name : str
        Operation name, used in log records and error messages.
    fn : callable
        Generic kernel ``fn(context, rank)``.

    Examples
    --------
    >>> dispatch = RankDispatcher("crop", crop_function)
    >>> dispatch(context, context.input("X").ndim)
    """
    def __init__(self, name: str, fn: Callable[[Any, int], Any]) -> None:
        self.name = name
        self._table: Dict[int, Callable[[Any], Any]] = {
            rank: _specialize(fn, rank) for rank in SUPPORTED_RANKS
        }

    def specialization(self, rank: int) -> Callable[[Any], Any]:
        """
        Return the kernel specialized for ``rank``.

        Raises
        ------
        UnsupportedRankError
            If ``rank`` is outside 1..6. The failure is logged before raising.
        """
        try:
            return self._table[rank]
        except KeyError:
            logger.error("%s: only ranks %d to %d are supported, got rank %d",
                         self.name, SUPPORTED_RANKS[0], MAX_RANK, rank)
            raise UnsupportedRankError(self.name, rank, SUPPORTED_RANKS) from None

    def __call__(self, context: Any, rank: int) -> Any:
        kernel = self.specialization(rank)
        logger.debug("%s: dispatching to %s", self.name, kernel.__name__)
        return kernel(context)
