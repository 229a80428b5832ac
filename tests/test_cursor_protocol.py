import logging

import pytest

from lazy import (
    EXHAUSTED, CapabilityError, Chain, Concat, CursorFailedError, CursorState,
    Filter, IterableCursor, Map, Take, Yielded, cursor_of,
)


class FlakyIterator:
    """Iterator that resumes after signalling StopIteration once"""

    def __init__(self):
        self.calls = 0

    def __iter__(self):
        return self

    def __next__(self):
        self.calls += 1
        if self.calls == 2:
            raise StopIteration
        return self.calls


class TestCursorProtocol:
    """Test the advance() contract shared by every cursor"""

    def test_advance_yields_then_exhausts(self):
        """Test that a cursor yields each element once, then exhausts"""
        cursor = IterableCursor([1, 2])

        assert cursor.advance() == Yielded(1)
        assert cursor.advance() == Yielded(2)
        assert cursor.advance() is EXHAUSTED
        assert cursor.state is CursorState.EXHAUSTED

    def test_exhaustion_is_sticky(self):
        """Test that every call after exhaustion reports exhaustion"""
        cursor = IterableCursor([])
        for _ in range(5):
            assert cursor.advance() is EXHAUSTED, "Exhausted must be idempotent"

    def test_exhaustion_is_sticky_for_resuming_iterators(self):
        """Test that a non-sticky underlying iterator is never asked again"""
        flaky = FlakyIterator()
        cursor = IterableCursor(flaky)

        assert cursor.advance() == Yielded(1)
        assert cursor.advance() is EXHAUSTED
        assert cursor.advance() is EXHAUSTED
        assert flaky.calls == 2, f"Iterator was called {flaky.calls} times"

    def test_exhausted_sentinel_is_falsy_singleton(self):
        """Test the exhaustion sentinel"""
        assert not EXHAUSTED
        assert repr(EXHAUSTED) == "EXHAUSTED"
        assert type(EXHAUSTED)() is EXHAUSTED

    def test_yielded_can_carry_falsy_values(self):
        """Test that None and other falsy elements are yielded, not dropped"""
        cursor = IterableCursor([None, 0, ""])
        assert [step.value for step in (cursor.advance(), cursor.advance(), cursor.advance())] == [None, 0, ""]
        assert cursor.advance() is EXHAUSTED

    def test_python_iteration_bridge(self):
        """Test that cursors plug into for loops and list()"""
        assert list(Map(lambda x: x + 1, [1, 2, 3])) == [2, 3, 4]

    def test_cursor_of_returns_existing_cursor(self):
        """Test that a cursor is used as is rather than wrapped"""
        cursor = IterableCursor([1])
        assert cursor_of(cursor) is cursor

    def test_cursor_of_rejects_non_iterables(self):
        """Test that a non-iterable source is a capability error"""
        with pytest.raises(CapabilityError):
            cursor_of(42)
        with pytest.raises(TypeError):
            cursor_of(object())


class TestFailureDiscipline:
    """Test behaviour after a caller function raises"""

    def test_failure_propagates_unchanged(self):
        """Test that a transform failure reaches the caller as raised"""
        def explode(x):
            raise KeyError(x)

        cursor = Map(explode, [1])
        with pytest.raises(KeyError):
            cursor.advance()

    def test_failed_cursor_refuses_further_work(self):
        """Test that a failed cursor raises CursorFailedError afterwards"""
        pulled = []

        def fail_on_two(x):
            pulled.append(x)
            if x == 2:
                raise ValueError("boom")
            return x

        cursor = Map(fail_on_two, [1, 2, 3])
        assert cursor.advance() == Yielded(1)
        with pytest.raises(ValueError, match="boom"):
            cursor.advance()

        assert cursor.state is CursorState.FAILED
        with pytest.raises(CursorFailedError) as exc_info:
            cursor.advance()
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert pulled == [1, 2], f"Failed cursor pulled again: {pulled}"

    def test_failure_poisons_downstream_stages(self):
        """Test that every stage the failure passed through is failed"""
        def explode(x):
            raise RuntimeError("upstream")

        inner = Map(explode, [1, 2])
        outer = Take(5, inner)
        with pytest.raises(RuntimeError, match="upstream"):
            outer.advance()

        assert inner.state is CursorState.FAILED
        assert outer.state is CursorState.FAILED
        with pytest.raises(CursorFailedError):
            outer.advance()

    def test_failure_is_logged(self, caplog):
        """Test that failures are logged at debug level"""
        caplog.set_level(logging.DEBUG, logger="lazy")

        def explode(x):
            raise ValueError("bad value")

        with pytest.raises(ValueError):
            Map(explode, [1]).advance()
        assert "Map failed" in caplog.text

    def test_failing_predicate_poisons_filter(self):
        """Test that a predicate failure propagates and poisons the filter"""
        def fussy(x):
            if x == 3:
                raise TypeError("cannot judge 3")
            return x % 2 == 0

        cursor = Filter(fussy, [1, 2, 3, 4])
        assert cursor.advance() == Yielded(2)
        with pytest.raises(TypeError, match="cannot judge 3"):
            cursor.advance()

        assert cursor.state is CursorState.FAILED
        with pytest.raises(CursorFailedError):
            cursor.advance()

    def test_failing_inner_source_poisons_concat(self):
        """Test that a failure in one concatenated source poisons the concat"""
        def explode(x):
            raise ValueError(f"bad {x}")

        later = IterableCursor([3])
        cursor = Concat([1], Map(explode, [2]), later)

        assert cursor.advance() == Yielded(1)
        with pytest.raises(ValueError, match="bad 2"):
            cursor.advance()

        assert cursor.state is CursorState.FAILED
        with pytest.raises(CursorFailedError):
            cursor.advance()
        assert later.state is CursorState.RUNNING, "Later source must stay untouched"


class TestStopIterationFromCallables:
    """Test that StopIteration raised by a caller function is never read as exhaustion"""

    @staticmethod
    def stop_at_two(x):
        if x == 2:
            raise StopIteration
        return x

    def test_list_of_chain_raises(self):
        """Test that list() does not return a silently shortened result"""
        with pytest.raises(RuntimeError, match="callable raised StopIteration"):
            list(Chain([1, 2, 3]).map(self.stop_at_two))

    def test_to_list_raises_same_error(self):
        """Test that the reducer path reports the same failure as iteration"""
        with pytest.raises(RuntimeError, match="callable raised StopIteration") as exc_info:
            Chain([1, 2, 3]).map(self.stop_at_two).to_list()
        assert isinstance(exc_info.value.__cause__, StopIteration)

    def test_for_loop_and_sorted_raise(self):
        chain = Chain([3, 2, 1]).filter(self.stop_at_two)
        with pytest.raises(RuntimeError):
            for _ in chain:
                pass
        with pytest.raises(RuntimeError):
            sorted(chain)

    def test_cursor_is_poisoned_afterwards(self):
        cursor = Map(self.stop_at_two, [2, 3])
        with pytest.raises(RuntimeError):
            cursor.advance()

        assert cursor.state is CursorState.FAILED
        with pytest.raises(CursorFailedError) as exc_info:
            cursor.advance()
        assert "StopIteration" in str(exc_info.value.__cause__)
