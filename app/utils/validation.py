import re
from datetime import datetime
from typing import Optional

_TIME_LABEL = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def validate_phone_number(phone: str) -> bool:
    """Validate phone number format (international or local)."""
    if not phone:
        return True  # Allow empty/null

    phone_pattern = r"^[\+]?[1-9][\d\-\s\(\)\.]{7,15}$"
    return bool(re.match(phone_pattern, phone.replace(" ", "")))


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Digits only, so '(11) 9999-0000' and '11999990000' compare equal."""
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    return digits or None


def validate_time_label(label: str) -> bool:
    return bool(_TIME_LABEL.match(label or ""))


def label_to_minutes(label: str) -> int:
    """'HH:MM' -> minutes from midnight."""
    match = _TIME_LABEL.match(label or "")
    if not match:
        raise ValueError(f"'{label}' is not a valid HH:MM time")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_label(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute
