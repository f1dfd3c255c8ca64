"""Tree-shaped aggregation over partitioned items.

Items are split into partitions, each partition is folded from a zero value,
and the partial results are combined level by level until one value is left.
The combine order follows the partition layout rather than the input order,
so ``comb_op`` must be commutative and associative for the result to be
well defined.
"""

import logging
import math
import os
from concurrent.futures import Executor
from functools import reduce
from typing import Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')
U = TypeVar('U')


def partition(items: Sequence[T], num_partitions: int) -> List[Sequence[T]]:
    """Splits items into ``num_partitions`` contiguous slices of near equal size."""
    count = len(items)
    return [items[i * count // num_partitions:(i + 1) * count // num_partitions]
            for i in range(num_partitions)]


def default_num_partitions(count: int) -> int:
    return max(1, min(count, os.cpu_count() or 1))


def _fold_partition(items: Sequence[T], zero_value: U, seq_op: Callable[[U, T], U]) -> U:
    return reduce(seq_op, items, zero_value)


def tree_aggregate(
    items: Sequence[T],
    zero_value: U,
    seq_op: Callable[[U, T], U],
    comb_op: Callable[[U, U], U],
    num_partitions: Optional[int] = None,
    depth: int = 2,
    executor: Optional[Executor] = None
) -> U:
    """Aggregates items with a multi-level tree of combine steps.

    Args:
        items: The items to aggregate
        zero_value: Initial value of every partition fold
        seq_op: Folds one item into a partial result
        comb_op: Combines two partial results
        num_partitions: Number of partitions, defaults to the CPU count
        depth: Suggested depth of the combine tree
        executor: Executor to fold the partitions on, inline if omitted

    Returns:
        The aggregated value, ``zero_value`` if there are no items
    """
    if depth < 1:
        raise ValueError(f"Depth must be greater than or equal to 1 but got {depth}")
    if num_partitions is None:
        num_partitions = default_num_partitions(len(items))
    if num_partitions < 1:
        raise ValueError(f"Number of partitions must be positive but got {num_partitions}")

    partitions = partition(items, num_partitions)
    if executor is not None:
        futures = [executor.submit(_fold_partition, p, zero_value, seq_op) for p in partitions]
        partials = [future.result() for future in futures]
    else:
        partials = [_fold_partition(p, zero_value, seq_op) for p in partitions]
    logger.debug("Folded %d items in %d partitions", len(items), len(partials))

    scale = max(int(math.ceil(len(partials) ** (1.0 / depth))), 2)
    while len(partials) > scale + int(math.ceil(len(partials) / scale)):
        target = len(partials) // scale
        levels: List[List[U]] = [[] for _ in range(target)]
        for index, value in enumerate(partials):
            levels[index % target].append(value)
        partials = [reduce(comb_op, group) for group in levels]
        logger.debug("Combined partial results into %d groups", len(partials))

    return reduce(comb_op, partials, zero_value)
