"""
Pull-based lazy sequence combinators.

Every stage is a ``Cursor``: a single-use handle exposing ``advance()``,
which performs exactly one step of work and returns either ``Yielded(value)``
or the ``EXHAUSTED`` sentinel. Nothing is computed ahead of an explicit
``advance()`` call, so a consumer cancels a traversal simply by not asking
for more.

``Chain`` is the fluent, immutable front end: every combinator returns a new
Chain holding a deferred cursor-construction thunk, and each traversal builds
its own cursor graph from it.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)


class LazyError(Exception):
    """Base class for errors raised by the combinator library."""
    pass


class InvalidArgumentError(LazyError, ValueError):
    """Raised when a stage is constructed with invalid arguments."""
    pass


class CapabilityError(LazyError, TypeError):
    """Raised when a source lacks the capability a stage requires."""
    pass


class CursorFailedError(LazyError, RuntimeError):
    """Raised when advancing a cursor that already propagated a failure."""
    pass


class CursorState(str, Enum):
    """Lifecycle of a cursor."""
    RUNNING = "running"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass(frozen=True)
class Yielded:
    """One element produced by ``Cursor.advance()``."""
    value: Any


class _Exhausted:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "EXHAUSTED"

    def __bool__(self):
        return False


EXHAUSTED = _Exhausted()


class Cursor(ABC):
    """
    Single-use pull handle.

    Subclasses implement ``_step()``; ``advance()`` wraps it with the shared
    state machine: exhaustion is sticky, and a cursor whose step raised moves
    to FAILED and refuses further work.
    """

    def __init__(self):
        self._state = CursorState.RUNNING
        self._failure: Optional[BaseException] = None

    @property
    def state(self) -> CursorState:
        return self._state

    def advance(self):
        """Perform one step: return ``Yielded(value)`` or ``EXHAUSTED``."""
        if self._state is CursorState.EXHAUSTED:
            return EXHAUSTED
        if self._state is CursorState.FAILED:
            raise CursorFailedError(
                f"{type(self).__name__} cannot advance after a failure"
            ) from self._failure

        try:
            step = self._step()
        except StopIteration as e:
            # only a caller function can leak this; the iterator bridge
            # would otherwise read it as a normal end of iteration
            failure = RuntimeError(f"{type(self).__name__} callable raised StopIteration")
            self._state = CursorState.FAILED
            self._failure = failure
            logger.debug(f"{type(self).__name__} failed: {failure!r}")
            raise failure from e
        except Exception as e:
            self._state = CursorState.FAILED
            self._failure = e
            logger.debug(f"{type(self).__name__} failed: {e!r}")
            raise

        if step is EXHAUSTED:
            self._state = CursorState.EXHAUSTED
        return step

    @abstractmethod
    def _step(self):
        """Produce the next step; called only while RUNNING."""

    # --------- Python iterator bridge ----------
    def __iter__(self):
        return self

    def __next__(self):
        step = self.advance()
        if step is EXHAUSTED:
            raise StopIteration
        return step.value


class IterableCursor(Cursor):
    """Adapts any Python iterable to the cursor protocol."""

    def __init__(self, iterable: Iterable):
        super().__init__()
        self._iterator = iter(iterable)

    def _step(self):
        try:
            return Yielded(next(self._iterator))
        except StopIteration:
            # drop the reference so a non-sticky iterator is never asked again
            self._iterator = None
            return EXHAUSTED


def cursor_of(source) -> Cursor:
    """Return a fresh cursor over ``source`` (a Cursor is returned as is)."""
    if isinstance(source, Cursor):
        return source
    if isinstance(source, Chain):
        return source.cursor()
    try:
        return IterableCursor(source)
    except TypeError as e:
        raise CapabilityError(
            f"{type(source).__name__} object is not a sequential source"
        ) from e


def is_random_access(source) -> bool:
    """True when ``source`` offers indexed access and a known length."""
    if isinstance(source, Sequence):
        return True
    # mappings index by key, not by position
    if isinstance(source, Mapping):
        return False
    return hasattr(source, "__len__") and hasattr(source, "__getitem__")


def require_callable(fn, role):
    if not callable(fn):
        raise InvalidArgumentError(f"{role} must be callable, got {type(fn).__name__}")
    return fn


def require_count(n, role, minimum=0):
    # bool is an int subclass but never a meaningful count
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidArgumentError(f"{role} must be an integer, got {type(n).__name__}")
    if n < minimum:
        raise InvalidArgumentError(f"{role} must be >= {minimum}, got {n}")
    return n


# --------- stages ----------

class Map(Cursor):
    """Yield ``transform(x)`` for each upstream element."""

    def __init__(self, transform: Callable[[Any], Any], source):
        super().__init__()
        self._transform = require_callable(transform, "transform")
        self._source = cursor_of(source)

    def _step(self):
        step = self._source.advance()
        if step is EXHAUSTED:
            return EXHAUSTED
        return Yielded(self._transform(step.value))


class Filter(Cursor):
    """Yield the upstream elements for which ``predicate`` is true."""

    def __init__(self, predicate: Callable[[Any], Any], source):
        super().__init__()
        self._predicate = require_callable(predicate, "predicate")
        self._source = cursor_of(source)

    def _step(self):
        while True:
            step = self._source.advance()
            if step is EXHAUSTED:
                return EXHAUSTED
            if self._predicate(step.value):
                return step


class Take(Cursor):
    """Yield at most ``n`` upstream elements; never pulls past the limit."""

    def __init__(self, n: int, source):
        super().__init__()
        self._remaining = require_count(n, "take count")
        self._source = cursor_of(source)

    def _step(self):
        if self._remaining == 0:
            return EXHAUSTED
        self._remaining -= 1
        return self._source.advance()


class Skip(Cursor):
    """Drop the first ``n`` upstream elements, pulled on first demand."""

    def __init__(self, n: int, source):
        super().__init__()
        self._to_skip = require_count(n, "skip count")
        self._source = cursor_of(source)

    def _step(self):
        while self._to_skip > 0:
            self._to_skip -= 1
            if self._source.advance() is EXHAUSTED:
                return EXHAUSTED
        return self._source.advance()


class Chunk(Cursor):
    """Group consecutive upstream elements into tuples of ``size``."""

    def __init__(self, size: int, source):
        super().__init__()
        self._size = require_count(size, "chunk size", minimum=1)
        self._source = cursor_of(source)

    def _step(self):
        bucket = []
        while len(bucket) < self._size:
            step = self._source.advance()
            if step is EXHAUSTED:
                break
            bucket.append(step.value)
        if not bucket:
            return EXHAUSTED
        return Yielded(tuple(bucket))


class Concat(Cursor):
    """
    Yield every element of each source in order.

    Source ``i + 1`` is turned into a cursor only once source ``i`` is
    exhausted.
    """

    def __init__(self, *sources):
        super().__init__()
        self._pending = iter(sources)
        self._active: Optional[Cursor] = None

    def _step(self):
        while True:
            if self._active is None:
                source = next(self._pending, EXHAUSTED)
                if source is EXHAUSTED:
                    return EXHAUSTED
                self._active = cursor_of(source)
            step = self._active.advance()
            if step is not EXHAUSTED:
                return step
            self._active = None


class Reverse(Cursor):
    """Yield a random-access source back to front by index, without copying."""

    def __init__(self, source):
        super().__init__()
        if not is_random_access(source):
            raise CapabilityError(
                f"reverse requires indexed access and a known length, "
                f"got {type(source).__name__}"
            )
        self._source = source
        self._index = len(source)

    def _step(self):
        if self._index == 0:
            return EXHAUSTED
        self._index -= 1
        return Yielded(self._source[self._index])


# --------- chain ----------

class Chain:
    """
    Immutable, chainable description of a lazy pipeline.

    Combinators return a new Chain; nothing touches the source until a
    terminal operation (or iteration) builds a cursor from it.
    """

    __slots__ = ("_source", "_factory", "_stages")

    def __init__(self, source, _factory=None, _stages=()):
        object.__setattr__(self, "_source", source)
        object.__setattr__(self, "_factory", _factory or (lambda: cursor_of(source)))
        object.__setattr__(self, "_stages", tuple(_stages))

    def __setattr__(self, name, value):
        raise AttributeError("Chain is immutable")

    def __delattr__(self, name):
        raise AttributeError("Chain is immutable")

    def __repr__(self):
        stages = " -> ".join(self._stages) or "source"
        return f"Chain({type(self._source).__name__}: {stages})"

    @property
    def stages(self):
        """Names of the stages applied so far, in order."""
        return self._stages

    def cursor(self) -> Cursor:
        """Build a fresh cursor graph for one traversal."""
        cursor = self._factory()
        logger.debug(f"Built cursor for {self!r}")
        return cursor

    def __iter__(self):
        return self.cursor()

    # --------- combinators (lazy) ----------
    def _with_stage(self, name, build):
        factory = self._factory
        return Chain(self._source, lambda: build(factory()), self._stages + (name,))

    def map(self, transform):
        require_callable(transform, "transform")
        return self._with_stage("map", lambda cursor: Map(transform, cursor))

    def filter(self, predicate):
        require_callable(predicate, "predicate")
        return self._with_stage("filter", lambda cursor: Filter(predicate, cursor))

    def take(self, n):
        require_count(n, "take count")
        return self._with_stage("take", lambda cursor: Take(n, cursor))

    def skip(self, n):
        require_count(n, "skip count")
        return self._with_stage("skip", lambda cursor: Skip(n, cursor))

    def chunk(self, size):
        require_count(size, "chunk size", minimum=1)
        return self._with_stage("chunk", lambda cursor: Chunk(size, cursor))

    def page(self, page_number, page_size):
        """Get a specific page of results (1-indexed)."""
        require_count(page_number, "page number", minimum=1)
        require_count(page_size, "page size")
        return self.skip((page_number - 1) * page_size).take(page_size)

    def concat(self, *others):
        """Append ``others`` after this chain's elements, each built lazily."""
        return self._with_stage("concat", lambda cursor: Concat(cursor, *others))

    def reverse(self):
        """Reverse a random-access source that has no stages applied yet."""
        if self._stages or not is_random_access(self._source):
            raise CapabilityError(
                "reverse requires a random-access source with no stages applied"
            )
        source = self._source
        return Chain(source, lambda: Reverse(source), ("reverse",))

    # --------- terminals ----------
    def to(self, converter):
        """Apply ``converter`` to the still-lazy chain."""
        return converter(self)

    def head(self, default=None):
        import reducers
        return reducers.head(self, default)

    def find(self, predicate, default=None):
        import reducers
        return reducers.find(predicate, self, default)

    def every(self, predicate):
        import reducers
        return reducers.every(predicate, self)

    def some(self, predicate):
        import reducers
        return reducers.some(predicate, self)

    def reduce(self, combine, seed):
        import reducers
        return reducers.reduce(combine, seed, self)

    def count(self):
        import reducers
        return reducers.count(self)

    def to_list(self):
        import reducers
        return reducers.to_list(self)
