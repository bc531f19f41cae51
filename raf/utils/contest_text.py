import re
from dataclasses import dataclass
from datetime import datetime, timezone

from raf.exceptions import ValidationError

DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"

# 2024-08-28 20:00 +01 | +0100 | +01:00
_END_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\s+(\d{1,2}:\d{2})\s*([+-])(\d{2}):?(\d{2})?$")


@dataclass(frozen=True)
class ContestDraft:
    """Конкурс, разобранный из сообщения владельца, еще не сохраненный"""
    name: str
    end: datetime
    prize: str
    chan: int


def parse_end_date(value: str) -> datetime:
    """
    Разбирает дату окончания в формате ``YYYY-MM-DD hh:mm ±HHMM``.

    Returns:
        datetime: Дата в UTC

    Raises:
        ValidationError: дату не удалось разобрать
    """
    match = _END_RE.match(value.strip())
    if not match:
        raise ValidationError(f"can't parse end date {value!r}, expected YYYY-MM-DD hh:mm +HHMM")

    day, time, sign, hours, minutes = match.groups()
    normalized = f"{day} {time}:00 {sign}{hours}{minutes or '00'}"
    try:
        end = datetime.strptime(normalized, DATE_FORMAT)
    except ValueError as e:
        raise ValidationError(f"can't parse end date {value!r}: {e}") from e
    return end.astimezone(timezone.utc)


def parse_contest_text(text: str, chan: int, now: datetime | None = None) -> ContestDraft:
    """
    Разбирает сообщение из трех строк: название, дата окончания, приз.

    Args:
        text (str): Текст сообщения
        chan (int): ID канала, для которого создается конкурс
        now (datetime | None): Текущий момент (для тестов)

    Raises:
        ValidationError: не три строки, некорректная дата или дата не в будущем
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) != 3:
        raise ValidationError(f"expected 3 lines (name, end date, prize), got {len(lines)}")

    name, end_text, prize = lines
    end = parse_end_date(end_text)

    now = now or datetime.now(timezone.utc)
    if end <= now:
        raise ValidationError(f"end date {end:%Y-%m-%d %H:%M} UTC is not in the future")

    return ContestDraft(name=name, end=end, prize=prize, chan=chan)
