from concurrent.futures import ThreadPoolExecutor

from app.core.accumulator import EmailAccumulator


def test_extend_preserves_order_and_duplicates():
    accumulator = EmailAccumulator()
    accumulator.extend(["a@x.com", "b@x.com"])
    accumulator.extend(["a@x.com"])

    assert accumulator.snapshot() == ["a@x.com", "b@x.com", "a@x.com"]
    assert len(accumulator) == 3


def test_snapshot_is_a_copy():
    accumulator = EmailAccumulator()
    accumulator.extend(["a@x.com"])

    accumulator.snapshot().append("b@x.com")

    assert accumulator.snapshot() == ["a@x.com"]


def test_concurrent_batches_stay_contiguous():
    accumulator = EmailAccumulator()
    batches = [[f"{i}-{j}@x.com" for j in range(50)] for i in range(20)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(accumulator.extend, batches))

    emails = accumulator.snapshot()
    assert len(emails) == 1000
    for batch in batches:
        start = emails.index(batch[0])
        assert emails[start:start + len(batch)] == batch
