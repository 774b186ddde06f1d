"""Vote tallying for poll results."""
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Hashable, Iterable, List, Sequence


@dataclass
class OptionResult:
    option_id: Hashable
    option_text: str
    vote_count: int
    percentage: float


@dataclass
class PollResults:
    total_votes: int = 0
    options: List[OptionResult] = field(default_factory=list)


def percentage(count: int, total: int) -> float:
    """``count / total * 100`` rounded half-up to one decimal, 0 when empty."""
    if total <= 0:
        return 0.0
    value = Decimal(count) * 100 / Decimal(total)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def tally(options: Sequence, voted_option_ids: Iterable[Hashable]) -> PollResults:
    """Group votes by option id.

    ``options`` are objects with ``id`` and ``text`` attributes in display
    order. Votes for ids that are not among ``options`` are ignored so the
    total always equals the sum of the per-option counts.
    """
    known_ids = {opt.id for opt in options}
    counts = Counter(option_id for option_id in voted_option_ids if option_id in known_ids)
    total = sum(counts.values())

    return PollResults(
        total_votes=total,
        options=[
            OptionResult(
                option_id=opt.id,
                option_text=opt.text,
                vote_count=counts.get(opt.id, 0),
                percentage=percentage(counts.get(opt.id, 0), total),
            )
            for opt in options
        ],
    )
