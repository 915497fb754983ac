"""Turn raw topic hit counts into a percentage distribution.

The output always sums to exactly 100: rounding drift is pushed onto the
largest entry, and an all-zero input falls back to a fixed default.
"""

from collections.abc import Iterable, Mapping

from .constants import DEFAULT_TOPIC_DISTRIBUTION


def normalize_topic_distribution(counts: Mapping | Iterable) -> list[dict]:
    """Convert {name: count} (or (name, count) pairs) to [{name, percentage}].

    Percentages are non-negative ints summing to 100, sorted descending.
    Zero-count topics are left out.
    """
    pairs = counts.items() if isinstance(counts, Mapping) else counts
    cleaned = []
    for name, count in pairs:
        value = _as_count(count)
        if value > 0:
            cleaned.append((str(name), value))

    if not cleaned:
        return [{"name": name, "percentage": pct} for name, pct in DEFAULT_TOPIC_DISTRIBUTION]

    total = sum(value for _, value in cleaned)
    if total == float("inf"):
        # counts near the float limit: measure them against the largest
        peak = max(value for _, value in cleaned)
        cleaned = [(name, value / peak) for name, value in cleaned]
        total = sum(value for _, value in cleaned)

    distribution = [
        {"name": name, "percentage": _round_half_up(value / total * 100)}
        for name, value in cleaned
    ]
    distribution.sort(key=lambda t: -t["percentage"])

    # sorted descending, so the first entry is the (first) largest
    drift = 100 - sum(t["percentage"] for t in distribution)
    if drift > 0:
        distribution[0]["percentage"] += drift
    elif drift < 0:
        # only spills past the largest entry with hundreds of tiny topics
        for topic in distribution:
            take = min(topic["percentage"], -drift)
            topic["percentage"] -= take
            drift += take
            if not drift:
                break
        distribution.sort(key=lambda t: -t["percentage"])
    return distribution


def _as_count(value) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return max(number, 0.0)


def _round_half_up(x: float) -> int:
    return int(x + 0.5)
