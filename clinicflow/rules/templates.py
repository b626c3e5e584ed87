"""Placeholder rendering and due-date parsing for action parameters."""
import re
import structlog
from datetime import datetime, timedelta, timezone
from typing import Any
from .conditions import MISSING, get_nested_value, to_text

log = structlog.get_logger()

PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")
RELATIVE_OFFSET = re.compile(r"^\+(\d+)")


def render_template(template: str | None, data: Any) -> str:
    """
    Replace ``{{ dotted.path }}`` placeholders with values from the payload.

    Placeholders whose path does not resolve are left verbatim so authors
    can spot typos. A resolved null renders as an empty string.
    """
    if template is None:
        return ""

    def _replace(match: re.Match) -> str:
        value = get_nested_value(data, match.group(1).strip())
        if value is MISSING:
            return match.group(0)
        return to_text(value)

    return PLACEHOLDER.sub(_replace, str(template))


def calculate_due_date(value: str | None, now: datetime | None = None) -> datetime | None:
    """
    Turn a due-date parameter into a timestamp.

    Supports relative offsets ("+24h", "+3d", "+1w", "+30" for minutes)
    and ISO-8601 timestamps.

    Returns:
        The due datetime, or None when the input is empty or unparseable
    """
    if not value:
        return None

    now = now or datetime.now(timezone.utc)
    value = value.strip()

    if value.startswith("+"):
        match = RELATIVE_OFFSET.match(value)
        if not match:
            log.warning("due_date.invalid", value=value)
            return None
        amount = int(match.group(1))
        unit = value[-1].lower()
        if unit == "h":
            return now + timedelta(hours=amount)
        elif unit == "d":
            return now + timedelta(days=amount)
        elif unit == "w":
            return now + timedelta(weeks=amount)
        return now + timedelta(minutes=amount)

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        log.warning("due_date.invalid", value=value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
