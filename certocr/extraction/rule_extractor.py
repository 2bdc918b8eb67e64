"""Rule-based extraction of amounts and dates from OCR text.

Every extractor is a pure function of the recognized text. Ambiguity is
kept: all plausible candidates are returned with the label word found
next to them, and only the pickers choose between them.
"""

import functools
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar

from certocr.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FieldCandidate(Generic[T]):
    """An extracted value with the label word found next to it, if any."""

    label: str | None
    value: T


# Optional label word, then a comma-grouped or 4+ digit number, then an optional won sign.
_AMOUNT_PATTERN = re.compile(
    r"([가-힣A-Za-z]+)?\s*[:\s]*([0-9]{1,3}(?:,[0-9]{3})+|[0-9]{4,})\s*(원)?"
)

_DATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?<![0-9])([0-9]{4})[.\-/년\s]\s*([0-9]{1,2})[.\-/월\s]\s*([0-9]{1,2})일?"),
    re.compile(r"(?<![0-9])([0-9]{2})[.\-/]([0-9]{1,2})[.\-/]([0-9]{1,2})"),
]

_DATE_LABEL_PATTERN = re.compile(r"(결제|승인|거래|취득|합격|발급)")
_DATE_CONTEXT_CHARS = 5

_FINAL_AMOUNT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:최종|결제|합계|총액|청구|최종결제|최종금액)\s*[:\s]*([0-9,]+)\s*원"),
    re.compile(r"([0-9,]+)\s*원"),
]

FINAL_AMOUNT_LABELS: tuple[str, ...] = ("합계", "총액", "승인금액", "결제금액")
PAYMENT_DATE_LABELS: tuple[str, ...] = ("결제", "승인", "거래")


def tolerant(default_factory: Callable[[], T]) -> Callable:
    """Make a text extractor safe to call on anything.

    Non-string or empty input returns ``default_factory()`` immediately,
    and any error raised while extracting is logged and turned into the
    same empty result.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(text: object, *args, **kwargs) -> T:
            if not text or not isinstance(text, str):
                return default_factory()
            try:
                return func(text, *args, **kwargs)
            except Exception:
                logger.warning("Extractor %s failed", func.__name__, exc_info=True)
                return default_factory()

        return wrapper

    return decorator


def parse_amount(value: str) -> int | None:
    """Parse a comma-grouped amount; ``None`` unless it is a positive integer."""
    digits = value.replace(",", "").strip()
    if not digits.isdigit():
        return None
    amount = int(digits)
    return amount if amount > 0 else None


def normalize_date(value: str | None) -> str | None:
    """Normalize a Korean or numeric date to ``YYYY-MM-DD``.

    Accepts ``.``, ``/``, ``-`` and ``년``/``월``/``일`` separators. Two-digit
    years above 50 map to 19xx, the rest to 20xx.

    Args:
        value: Date text such as ``"2024.3.5"``, ``"24/03/05"`` or
            ``"2024년 3월 5일"``.

    Returns:
        The normalized date, or ``None`` if it is not a valid calendar date.
    """
    if not value:
        return None
    cleaned = re.sub(r"[년./]", "-", value)
    cleaned = cleaned.replace("월", "-").replace("일", "")
    cleaned = re.sub(r"\s+", "", cleaned)
    parts = [p for p in cleaned.split("-") if p]
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None

    year, month, day = parts
    if len(year) == 2:
        year = f"19{year}" if int(year) > 50 else f"20{year}"
    if len(year) != 4:
        return None

    normalized = f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    try:
        datetime.strptime(normalized, "%Y-%m-%d")
    except ValueError:
        return None
    return normalized


@tolerant(list)
def extract_amounts(text: str) -> list[FieldCandidate[int]]:
    """Find every monetary amount with its preceding label word.

    Args:
        text: Recognized text.

    Returns:
        Positive integer amounts in document order.
    """
    candidates: list[FieldCandidate[int]] = []
    for match in _AMOUNT_PATTERN.finditer(text):
        amount = parse_amount(match.group(2))
        if amount is None:
            continue
        label = (match.group(1) or "").strip() or None
        candidates.append(FieldCandidate(label, amount))
    logger.debug("Found %d amount candidates", len(candidates))
    return candidates


def _date_label(text: str, start: int, end: int) -> str | None:
    context = text[max(0, start - _DATE_CONTEXT_CHARS) : end + _DATE_CONTEXT_CHARS]
    match = _DATE_LABEL_PATTERN.search(context)
    return match.group(1) if match else None


@tolerant(list)
def extract_dates(text: str) -> list[FieldCandidate[str]]:
    """Find dates, normalize them and guess their label from nearby words.

    Args:
        text: Recognized text.

    Returns:
        ``YYYY-MM-DD`` candidates; full-year matches come before
        two-digit-year matches.
    """
    candidates: list[FieldCandidate[str]] = []
    for pattern in _DATE_PATTERNS:
        for match in pattern.finditer(text):
            normalized = normalize_date(match.group(0))
            if normalized is None:
                continue
            label = _date_label(text, match.start(), match.end())
            candidates.append(FieldCandidate(label, normalized))
    logger.debug("Found %d date candidates", len(candidates))
    return candidates


@tolerant(lambda: None)
def extract_final_payment_amount(text: str) -> str | None:
    """Pick the final payable amount on a receipt.

    Collects labeled and unlabeled ``N원`` amounts and returns the text of
    the largest one; on receipts the total is the largest number.

    Args:
        text: Recognized receipt text.

    Returns:
        The amount as printed (commas kept), or ``None``.
    """
    amounts: list[tuple[int, str]] = []
    for pattern in _FINAL_AMOUNT_PATTERNS:
        for match in pattern.finditer(text):
            printed = match.group(1).strip(",")
            value = parse_amount(printed)
            if value is not None:
                amounts.append((value, printed))

    if not amounts:
        return None
    best = max(amounts, key=lambda item: item[0])
    logger.debug("Final payment amount: %s (of %d matches)", best[1], len(amounts))
    return best[1]


def _has_label(candidate: FieldCandidate, keys: Iterable[str]) -> bool:
    return bool(candidate.label) and any(k in candidate.label for k in keys)


def pick_final_amount(candidates: list[FieldCandidate[int]]) -> int | None:
    """Largest amount whose label names a total or an approved payment.

    Unlabeled amounts are never used.

    Args:
        candidates: Output of :func:`extract_amounts`.

    Returns:
        The final amount, or ``None`` when no candidate has a total label.
    """
    labeled = [c for c in candidates if _has_label(c, FINAL_AMOUNT_LABELS)]
    if not labeled:
        return None
    return max(labeled, key=lambda c: c.value).value


def pick_payment_date(candidates: list[FieldCandidate[str]]) -> str | None:
    """First date labeled as payment, then approval, then transaction."""
    for key in PAYMENT_DATE_LABELS:
        for candidate in candidates:
            if _has_label(candidate, (key,)):
                return candidate.value
    return None
