import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from app.domain.order_number import generate_order_number

ORDER_NUMBER = re.compile(r"^CJ-\d{6}-[0-9A-F]{10}$")


def test_order_number_format():
    number = generate_order_number(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))

    assert ORDER_NUMBER.match(number)
    assert number.startswith("CJ-261019-")


def test_sequential_order_numbers_are_distinct():
    numbers = [generate_order_number() for _ in range(5000)]
    assert len(set(numbers)) == len(numbers)


def test_concurrent_order_numbers_are_distinct():
    with ThreadPoolExecutor(max_workers=16) as pool:
        numbers = list(pool.map(lambda _: generate_order_number(), range(5000)))

    assert len(set(numbers)) == len(numbers)
    assert all(ORDER_NUMBER.match(n) for n in numbers)
