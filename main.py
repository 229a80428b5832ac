from time import sleep, perf_counter

from lazy import Chain, Concat, Reverse
from reducers import every, find, head, some, to_list
from utils import CountingSource, configure_logging

configure_logging()


def expensive_transform(x):
    # Simulate a costly step so laziness is visible
    print(f"  computing f({x}) ...")
    sleep(0.2)
    return x * x


print("\n--- Demo: laziness (no work until a terminal runs) ---")
pipeline = (
    Chain(range(1, 10_000))
    .map(expensive_transform)
    .filter(lambda v: v % 2 == 0)
    .take(3)
)
print(f"Constructed {pipeline!r}. Nothing computed yet.")

print("\nCollecting (computes only what is needed for 3 items):")
t0 = perf_counter()
out = pipeline.to_list()
t1 = perf_counter()
print(f"Result: {out}")
print(f"Time: {t1 - t0:.2f}s\n")

print("--- Demo: short-circuiting terminals ---")
source = CountingSource([1, 3, 5, 6, 7, 9, 11])
print(f"every odd? {every(lambda x: x % 2 == 1, source)} after {source.pulls} pulls")
source.reset_counters()
print(f"some > 4? {some(lambda x: x > 4, source)} after {source.pulls} pulls")
source.reset_counters()
print(f"find > 5: {find(lambda x: x > 5, source)} after {source.pulls} pulls")
source.reset_counters()
print(f"take(0) yielded {Chain(source).take(0).count()} items after {source.pulls} pulls\n")

print("--- Demo: concat and reverse ---")
print("concat:", to_list(Concat([1, 2, 3, 4], [5])))
letters = ["A", "B"]
print("reverse:", to_list(Reverse(letters)), "original still", letters)
print("head of reversed chain:", Chain(letters).reverse().to(head))
