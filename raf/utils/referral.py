"""
Реферальные токены.

Токен это base64url от query-строки вида ``chan=1&contest=2&source=3``.
Символы '=' в конце отбрасываются, так как параметр ``start`` в ссылках
Telegram допускает только ``[A-Za-z0-9_-]``.
"""
import base64
import binascii
import re
from dataclasses import dataclass
from urllib.parse import urlencode, parse_qsl
from typing import Dict, Mapping

from raf.exceptions import DecodeError

REFERRAL_KEYS = ("source", "chan", "contest")

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]*=*$")

# Значение поля, отсутствующего в токене
MISSING = -1


def encode(fields: Mapping[str, object]) -> str:
    """
    Кодирует поля в реферальный токен.

    Args:
        fields (Mapping[str, object]): Значения source, chan, contest (None пропускается)

    Returns:
        str: Токен без паддинга
    """
    query = urlencode([(key, str(value)) for key, value in fields.items() if value is not None])
    return base64.urlsafe_b64encode(query.encode("utf-8")).decode("ascii").rstrip("=")


def decode(token: str) -> Dict[str, str]:
    """
    Декодирует реферальный токен.

    Raises:
        DecodeError: некорректный base64, не UTF-8 или некорректная query-строка
    """
    token = token.strip()
    if not _TOKEN_RE.match(token):
        raise DecodeError(f"invalid referral token {token!r}: unexpected characters")
    padded = token.rstrip("=")
    padded += "=" * (-len(padded) % 4)
    try:
        query = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        pairs = parse_qsl(query, keep_blank_values=True, strict_parsing=True)
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise DecodeError(f"invalid referral token {token!r}: {e}") from e

    return {key: value for key, value in pairs if key in REFERRAL_KEYS}


def _as_id(value: str | None) -> int:
    if value is None:
        return MISSING
    try:
        return int(value)
    except ValueError:
        return MISSING


@dataclass(frozen=True)
class ReferralParams:
    """Поля токена в виде чисел. MISSING (-1) означает, что поле не передано"""
    source: int = MISSING
    chan: int = MISSING
    contest: int = MISSING

    @classmethod
    def from_token(cls, token: str) -> "ReferralParams":
        fields = decode(token)
        return cls(
            source=_as_id(fields.get("source")),
            chan=_as_id(fields.get("chan")),
            contest=_as_id(fields.get("contest")),
        )

    @property
    def has_source(self) -> bool:
        return self.source != MISSING

    @property
    def has_contest(self) -> bool:
        return self.chan != MISSING and self.contest != MISSING


def build_link(bot_name: str, **fields) -> str:
    """Ссылка вида https://t.me/<bot>?start=<token>"""
    return f"https://t.me/{bot_name}?start={encode(fields)}"
