"""
Normalization of raw operator/spreadsheet input.

Levels are converted to centimeters; dates of any shape found in plant
spreadsheets (ISO, ROC calendar, bare month/day, Excel serials) are snapped
to local midnight.
"""
import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from chemdose.models import InputUnit

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, int, float]

EXCEL_EPOCH = datetime(1899, 12, 30)
# Numbers below this are Excel serial days, above are epoch milliseconds
EPOCH_MS_FLOOR = 100_000_000

ROC_YEAR_OFFSET = 1911
ROC_PATTERN = re.compile(r'^(\d{1,3})[/.\-](\d{1,2})[/.\-](\d{1,2})$')
FOUR_DIGIT_YEAR = re.compile(r'\d{4}')
# Excel serials for dates after 1927 and epoch milliseconds; bare 4-digit years are not dates
SERIAL_TEXT = re.compile(r'^\d{5,}(\.\d+)?$')

WESTERN_FORMATS = [
    '%Y-%m-%d',
    '%Y/%m/%d',
    '%Y.%m.%d',
    '%Y-%m-%d %H:%M:%S',
    '%Y/%m/%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y/%m/%d %H:%M',
    '%m/%d/%Y',
    '%d.%m.%Y',
    '%Y年%m月%d日',
]

# strptime fills a missing year with 1900
BARE_FORMATS = ['%b %d', '%B %d', '%d %b', '%d %B', '%m月%d日']


def to_midnight(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime(value.year, value.month, value.day)


def _from_number(value: float) -> Optional[datetime]:
    if isinstance(value, bool) or math.isnan(value):
        return None
    if value >= EPOCH_MS_FLOOR:
        return to_midnight(datetime.fromtimestamp(value / 1000))
    if value <= 0:
        return None
    return to_midnight(EXCEL_EPOCH + timedelta(days=float(value)))


def _parse_western(text: str) -> Optional[datetime]:
    for fmt in WESTERN_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError:
        return None


def normalize_timestamp(value: Optional[DateLike]) -> Optional[datetime]:
    """
    Snap a date-like value to local midnight.

    Epoch-millisecond numbers are taken as already normalized local days;
    they are converted and snapped like any other value, so applying this
    twice changes nothing. Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_midnight(value)
    if isinstance(value, date):
        return to_midnight(value)
    if isinstance(value, (int, float)):
        return _from_number(value)

    text = str(value).strip()
    if not text:
        return None
    parsed = _parse_western(text)
    if parsed is None:
        parsed = parse_flexible_date_key(text)
    return to_midnight(parsed) if parsed else None


def _parse_roc(text: str) -> Optional[datetime]:
    match = ROC_PATTERN.match(text)
    if not match:
        return None
    roc_year, month, day = (int(g) for g in match.groups())
    if not 0 < roc_year < 200:
        return None
    try:
        return datetime(roc_year + ROC_YEAR_OFFSET, month, day)
    except ValueError:
        return None


def parse_flexible_date_key(key: Any, today: Optional[date] = None) -> Optional[datetime]:
    """
    Interpret a spreadsheet column header as a date.

    Order: serial numbers written as text, explicit 4-digit year, ROC calendar (YYY/MM/DD), month/day with
    the current year appended, then month-name forms forced to the current
    year.
    """
    if key is None:
        return None
    if isinstance(key, (datetime, date)):
        return to_midnight(key)
    if isinstance(key, (int, float)):
        return _from_number(key)

    text = str(key).strip()
    if not text:
        return None
    current_year = (today or date.today()).year

    if SERIAL_TEXT.match(text):
        return _from_number(float(text))

    if FOUR_DIGIT_YEAR.search(text):
        parsed = _parse_western(text)
        if parsed:
            return to_midnight(parsed)

    parsed = _parse_roc(text)
    if parsed:
        return parsed

    with_year = f"{current_year}/{re.sub(r'[.-]', '/', text)}"
    try:
        return datetime.strptime(with_year, '%Y/%m/%d')
    except ValueError:
        pass

    for fmt in BARE_FORMATS:
        try:
            bare = datetime.strptime(text, fmt)
        except ValueError:
            continue
        try:
            return bare.replace(year=current_year)
        except ValueError:
            # Feb 29 outside a leap year
            return None
    return None


def parse_number(raw: Any) -> Optional[float]:
    """Parse a numeric cell, tolerating thousands separators and a trailing %."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return None if math.isnan(raw) else float(raw)
    text = str(raw).strip().replace(',', '').rstrip('%').strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def is_meter_entry(raw: Any, tank) -> bool:
    return tank.input_unit == InputUnit.PERCENT or (isinstance(raw, str) and '%' in raw)


def normalize_level(raw: Any, tank) -> Optional[float]:
    """
    Convert a raw level entry to centimeters.
    PERCENT-mode tanks (and cells carrying a literal %) are entered in meters.
    """
    value = parse_number(raw)
    if value is None:
        return None
    if is_meter_entry(raw, tank):
        return value * 100
    return value


class LevelNormalizer:
    """Stateful level normalizer that counts conversions for import feedback."""

    def __init__(self):
        self.converted_count = 0

    def normalize(self, raw: Any, tank) -> Optional[float]:
        value = normalize_level(raw, tank)
        if value is not None and is_meter_entry(raw, tank):
            self.converted_count += 1
        return value
