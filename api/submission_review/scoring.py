from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Iterator, List

from .models import FlagCode, RecommendedAction

REJECT_THRESHOLD = 0.7
REVIEW_THRESHOLD = 0.4
REVIEW_FLAG_COUNT = 3

# Flags without an entry here (frequency, rejection history, spam) still
# move the fraud score but produce no suggestion text.
SUGGESTIONS = [
    ((FlagCode.SHORT_DESCRIPTION,),
     "Add more details about your achievement (minimum 100 characters recommended)"),
    ((FlagCode.SHORT_TITLE,),
     "Provide a more descriptive title (minimum 10 characters)"),
    ((FlagCode.MISSING_EVIDENCE, FlagCode.INVALID_EVIDENCE_LINK),
     "Upload video/photo proof to Google Drive and ensure the link is publicly accessible"),
    ((FlagCode.DUPLICATE_SUBMISSION,),
     "This appears similar to a recent submission. Please ensure you are submitting a unique record"),
    ((FlagCode.INAPPROPRIATE_CONTENT,),
     "Content may violate community guidelines. Please review and revise"),
    ((FlagCode.LOW_QUALITY_CONTENT,),
     "Improve content quality with specific details, proper grammar, and clear descriptions"),
]


class FlagSet:
    """Insertion-ordered flags; adding a flag twice is a no-op."""

    def __init__(self, flags: Iterable[FlagCode] = ()):
        self._flags: List[FlagCode] = []
        for f in flags:
            self.add(f)

    def add(self, flag: FlagCode) -> bool:
        if flag in self._flags:
            return False
        self._flags.append(flag)
        return True

    def __contains__(self, flag) -> bool:
        return flag in self._flags

    def __iter__(self) -> Iterator[FlagCode]:
        return iter(self._flags)

    def __len__(self) -> int:
        return len(self._flags)

    def as_list(self) -> List[FlagCode]:
        return list(self._flags)


def title_similarity(a: str, b: str) -> float:
    """
    Word overlap between two titles: how many of `a`'s whitespace tokens occur
    in `b`, over the longer token count. Case-insensitive.
    """
    words_a = a.lower().split()
    words_b = b.lower().split()
    longest = max(len(words_a), len(words_b))
    if longest == 0:
        return 0.0
    vocab_b = set(words_b)
    matches = sum(1 for w in words_a if w in vocab_b)
    return matches / longest


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(max(value, low), high)


def round_score(value: float) -> float:
    """Two decimals, ties away from zero on the printed value (0.125 -> 0.13)."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def decide_action(fraud_score: float, flags) -> RecommendedAction:
    if fraud_score > REJECT_THRESHOLD or FlagCode.INAPPROPRIATE_CONTENT in flags:
        return RecommendedAction.REJECT
    if fraud_score > REVIEW_THRESHOLD or len(flags) >= REVIEW_FLAG_COUNT:
        return RecommendedAction.REVIEW
    return RecommendedAction.APPROVE


def build_suggestions(flags) -> List[str]:
    return [text for codes, text in SUGGESTIONS if any(c in flags for c in codes)]
