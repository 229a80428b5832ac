"""
Utility functions for the lazy combinator library.

Logging and settings helpers, an instrumented source for observing how many
elements a pipeline actually pulls, traversal measurement, and assembly of a
Chain from declarative stage descriptions.
"""

import gc
import logging
import os
import time
import tracemalloc
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from lazy import Chain
from models import ChainSettings, StageKind, StageSpec, TraversalReport
from reducers import to_list

logger = logging.getLogger(__name__)

ENV_LOG_LEVEL = "LAZYCHAIN_LOG_LEVEL"
ENV_TRACE_PULLS = "LAZYCHAIN_TRACE_PULLS"


def load_settings(env: Optional[Mapping[str, str]] = None) -> ChainSettings:
    """Read settings from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env
    values: Dict[str, Any] = {}
    if ENV_LOG_LEVEL in env:
        values["log_level"] = env[ENV_LOG_LEVEL]
    if ENV_TRACE_PULLS in env:
        values["trace_pulls"] = env[ENV_TRACE_PULLS].strip().lower() in ("1", "true", "yes", "on")
    return ChainSettings(**values)


def configure_logging(settings: Optional[ChainSettings] = None) -> ChainSettings:
    """Configure root logging from ``settings`` and return the settings used."""
    settings = settings or load_settings()
    logging.basicConfig(level=settings.level_number())
    logger.debug(f"Logging configured at {settings.log_level}")
    return settings


class _CountingIterator:
    def __init__(self, owner):
        self._owner = owner
        self._position = 0

    def __iter__(self):
        return self

    def __next__(self):
        owner = self._owner
        owner.pulls += 1
        if self._position >= len(owner.items):
            raise StopIteration
        value = owner.items[self._position]
        self._position += 1
        if owner.trace:
            logger.debug(f"Pulled item {self._position - 1}: {value!r}")
        return value


class CountingSource:
    """
    Random-access source that records how it is consumed.

    ``pulls`` counts every request for a next element (including the one
    that finds the source exhausted), ``iterations`` counts iterators
    created, and ``indexes`` lists positions read through ``__getitem__``.
    The wrapped items are never modified.
    """

    def __init__(self, items: Iterable, trace: bool = False):
        self.items = items if isinstance(items, (list, tuple, str, range)) else list(items)
        self.trace = trace
        self.pulls = 0
        self.iterations = 0
        self.indexes: List[int] = []

    def __iter__(self):
        self.iterations += 1
        return _CountingIterator(self)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, index):
        self.indexes.append(index)
        if self.trace:
            logger.debug(f"Read index {index}")
        return self.items[index]

    def reset_counters(self):
        self.pulls = 0
        self.iterations = 0
        self.indexes = []


def measure_traversal(source, converter=to_list) -> TraversalReport:
    """Run ``converter`` over ``source`` and report time and peak memory."""
    tracemalloc.start()
    gc.collect()
    start_time = time.perf_counter()

    try:
        result = converter(source)
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        current, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    report = TraversalReport(
        result=result,
        result_size=len(result) if hasattr(result, "__len__") else None,
        execution_time_ms=execution_time_ms,
        peak_memory_mb=peak / 1024 / 1024
    )
    logger.debug(f"Traversal took {execution_time_ms:.2f} ms, peak {report.peak_memory_mb:.4f} MB")
    return report


def build_chain(source, stages: List[Union[StageSpec, Dict[str, Any]]]) -> Chain:
    """Assemble a Chain over ``source`` from stage descriptions."""
    chain = source if isinstance(source, Chain) else Chain(source)

    for stage in stages:
        spec = stage if isinstance(stage, StageSpec) else StageSpec.model_validate(stage)

        if spec.kind is StageKind.MAP:
            chain = chain.map(spec.fn)
        elif spec.kind is StageKind.FILTER:
            chain = chain.filter(spec.fn)
        elif spec.kind is StageKind.TAKE:
            chain = chain.take(spec.count)
        elif spec.kind is StageKind.SKIP:
            chain = chain.skip(spec.count)
        elif spec.kind is StageKind.CHUNK:
            chain = chain.chunk(spec.count)
        elif spec.kind is StageKind.CONCAT:
            chain = chain.concat(*spec.sources)
        elif spec.kind is StageKind.REVERSE:
            chain = chain.reverse()

    logger.debug(f"Built {chain!r} from {len(stages)} stage(s)")
    return chain
