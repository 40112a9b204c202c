from datetime import datetime

from canopy.schemas.common import to_naive_utc
from canopy.services.numbering import next_number


def test_first_number():
    assert next_number([], "RA-20250101-", 3) == "RA-20250101-001"


def test_sequence_past_width():
    existing = ["RA-20250101-998", "RA-20250101-999", "RA-20250101-1000"]
    assert next_number(existing, "RA-20250101-", 3) == "RA-20250101-1001"


def test_gaps_use_highest_suffix():
    assert next_number(["BT20250101-002"], "BT20250101-", 3) == "BT20250101-003"


def test_manual_suffix_ignored():
    existing = ["ORD-20250101-0004", "ORD-20250101-MANUAL", None]
    assert next_number(existing, "ORD-20250101-", 4) == "ORD-20250101-0005"


def test_to_naive_utc():
    naive = datetime(2030, 1, 1)
    assert to_naive_utc(naive) is naive
    aware = datetime.fromisoformat("2030-01-01T08:00:00+08:00")
    assert to_naive_utc(aware) == datetime(2030, 1, 1)
