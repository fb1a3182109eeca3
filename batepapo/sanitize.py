"""
Input normalization for everything that reaches the registry or the store.

Values are stripped of markup and trimmed, then checked per field. Nothing
here touches the database.
"""
from html.parser import HTMLParser
from typing import Optional, Union

from .errors import ValidationError
from .models import POSTABLE_TYPES

# largest value a signed 64-bit INTEGER column or LIMIT accepts
MAX_SQL_INT = 2**63 - 1


class MarkupStripper(HTMLParser):
    """Collects text content, dropping tags and script/style bodies."""

    skip_tags = {"script", "style"}

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.fed = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in self.skip_tags:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in self.skip_tags and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            self.fed.append(data)

    def get_data(self) -> str:
        return "".join(self.fed)


def strip_markup(value: str) -> str:
    stripper = MarkupStripper()
    stripper.feed(value)
    stripper.close()
    return stripper.get_data()


def clean(value: Optional[str]) -> str:
    if value is None:
        return ""
    return strip_markup(str(value)).strip()


def require_text(value: Optional[str], field: str) -> str:
    cleaned = clean(value)
    if not cleaned:
        raise ValidationError(f"O campo '{field}' é obrigatório.")
    return cleaned


def require_message_type(value: Optional[str]) -> str:
    cleaned = clean(value)
    if cleaned not in POSTABLE_TYPES:
        raise ValidationError(
            f"O campo 'type' deve ser um de: {', '.join(POSTABLE_TYPES)}."
        )
    return cleaned


def parse_limit(value: Union[str, int, None]) -> Optional[int]:
    """Return ``None`` for no limit, else a positive int."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("O parâmetro 'limit' deve ser um inteiro positivo.")
    if isinstance(value, int):
        limit = value
    else:
        text = str(value).strip()
        if not (text.isascii() and text.isdigit()):
            raise ValidationError("O parâmetro 'limit' deve ser um inteiro positivo.")
        limit = int(text)
    if limit <= 0:
        raise ValidationError("O parâmetro 'limit' deve ser um inteiro positivo.")
    return min(limit, MAX_SQL_INT)
