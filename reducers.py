"""
Terminal reducers: consume a source (iterable, Cursor or Chain) to a value.

``every`` and ``some`` are both built on ``accumulate_with``, which maps
elements to booleans, keeps only the one value that decides the answer and
stops after it, so neither pulls past the first deciding element.
"""

import operator
from typing import Any, Callable

from lazy import EXHAUSTED, Filter, Map, Take, cursor_of, require_callable


def _drain(cursor):
    """Pull every remaining value out of ``cursor``."""
    while True:
        step = cursor.advance()
        if step is EXHAUSTED:
            return
        yield step.value


def head(source, default=None):
    """Return the first element of ``source`` or ``default``; pulls once."""
    step = cursor_of(source).advance()
    if step is EXHAUSTED:
        return default
    return step.value


def find(predicate: Callable[[Any], Any], source, default=None):
    """Return the first element satisfying ``predicate``, or ``default``."""
    return head(Filter(predicate, source), default)


def reduce(combine: Callable[[Any, Any], Any], seed, source):
    """Strict left fold of ``source`` starting from ``seed``."""
    require_callable(combine, "combine")
    acc = seed
    for value in _drain(cursor_of(source)):
        acc = combine(acc, value)
    return acc


def accumulate_with(combine, seed, stop_when: bool, predicate, source):
    """
    Fold the boolean image of ``source`` until ``stop_when`` shows up.

    Elements are mapped through ``predicate`` to booleans, only values equal
    to ``stop_when`` are kept, and at most one of those is folded into
    ``seed`` with ``combine``. Upstream pulls end at the first element whose
    predicate result equals ``stop_when``.
    """
    require_callable(predicate, "predicate")
    stop_flag = bool(stop_when)
    deciding = Take(1, Filter(
        lambda flag: flag is stop_flag,
        Map(lambda value: bool(predicate(value)), source),
    ))
    return reduce(combine, seed, deciding)


def every(predicate, source) -> bool:
    """True unless some element fails ``predicate``; stops at the first failure."""
    return accumulate_with(operator.and_, True, False, predicate, source)


def some(predicate, source) -> bool:
    """True if any element satisfies ``predicate``; stops at the first match."""
    return accumulate_with(operator.or_, False, True, predicate, source)


def count(source) -> int:
    """Return the number of elements (traverses the whole source)."""
    return reduce(lambda n, _: n + 1, 0, source)


def to_list(source) -> list:
    """Collect ``source`` into a new list."""
    return list(_drain(cursor_of(source)))


def to_tuple(source) -> tuple:
    """Collect ``source`` into a new tuple."""
    return tuple(_drain(cursor_of(source)))
