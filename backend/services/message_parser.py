"""
Sale Notification Parser

Extracts structured sale fields from the free-text message a payment bot posts
when a payment is approved, e.g.:

    🎉 Pagamento Aprovado!
    🤖 Bot: @colegiovipbot
    🆔 ID Cliente: 2054698907
    📦 Plano: Plano Mensal
    💰 Valor: R$ 29,90
    ⏳ Tempo Conversão: 0d 0h 3m 51s
    🕓 Data e Hora da compra: 27/06/2025 22:58

Parsing is label based and line oriented. It never raises: a field whose label
is missing or whose value cannot be read is left as None so the partially
parsed sale still reaches the estimator and the operator.
"""

import logging
import re
import unicodedata
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional

from backend.models import ConversionTime, SaleData

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - Field Labels
# =============================================================================

# Each pattern captures the text after the label separator
CLIENT_ID_LABEL = re.compile(r'\bid\s*(?:do\s+)?cliente\s*[:\-]\s*(.*)$', re.IGNORECASE)
PLAN_LABEL = re.compile(r'\bplano\s*[:\-]\s*(.*)$', re.IGNORECASE)
VALUE_LABEL = re.compile(r'\bvalor\s*[:\-]\s*(.*)$', re.IGNORECASE)
PURCHASE_DATETIME_LABEL = re.compile(
    r'\bdata\s*e\s*hora\s*(?:da\s+compra)?\s*[:\-]\s*(.*)$', re.IGNORECASE
)
CONVERSION_TIME_LABEL = re.compile(
    r'\btempo\s*(?:de\s+)?convers[aã]o\s*[:\-]\s*(.*)$', re.IGNORECASE
)

DIGITS = re.compile(r'\d+')
AMOUNT = re.compile(r'\d[\d.,]*')
DURATION_COMPONENTS: Dict[str, re.Pattern] = {
    'days': re.compile(r'(\d+)\s*d(?![a-z])', re.IGNORECASE),
    'hours': re.compile(r'(\d+)\s*h(?![a-z])', re.IGNORECASE),
    'minutes': re.compile(r'(\d+)\s*m(?![a-z])', re.IGNORECASE),
    'seconds': re.compile(r'(\d+)\s*s(?![a-z])', re.IGNORECASE),
}

# Day-first, as the bot prints local time
PURCHASE_DATETIME_FORMATS: List[str] = [
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
]

SALE_FIELDS: List[str] = [
    'client_id',
    'plan',
    'value',
    'purchase_datetime',
    'conversion_time',
]


# =============================================================================
# HELPERS
# =============================================================================

def _find_label(lines: List[str], label: re.Pattern) -> Optional[str]:
    """Return the text following the first line matching label, or None."""
    for line in lines:
        # NFC so a decomposed 'ã' from some clients still matches the label
        match = label.search(unicodedata.normalize('NFC', line))
        if match is not None:
            return match.group(1).strip()
    return None


def parse_client_id(raw: Optional[str]) -> Optional[str]:
    """First run of digits after the client label."""
    if not raw:
        return None
    match = DIGITS.search(raw)
    return match.group(0) if match else None


def parse_plan(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    plan = raw.strip()
    return plan or None


def parse_value(raw: Optional[str]) -> Optional[Decimal]:
    """
    Parse a currency amount such as 'R$ 1.234,56', '29,90' or '29.90'.

    When both separators appear the last one is the decimal separator; a lone
    comma is always decimal. A lone dot followed by exactly three digits is
    read as a thousands separator ('1.234' -> 1234).
    """
    if not raw:
        return None
    match = AMOUNT.search(raw)
    if match is None:
        return None
    amount = match.group(0).rstrip('.,')

    if ',' in amount and '.' in amount:
        if amount.rfind(',') > amount.rfind('.'):
            amount = amount.replace('.', '').replace(',', '.')
        else:
            amount = amount.replace(',', '')
    elif ',' in amount:
        amount = amount.replace(',', '.') if amount.count(',') == 1 else amount.replace(',', '')
    elif amount.count('.') > 1 or re.fullmatch(r'\d{1,3}\.\d{3}', amount):
        amount = amount.replace('.', '')

    try:
        return Decimal(amount)
    except InvalidOperation:
        return None


def parse_purchase_datetime(raw: Optional[str]) -> Optional[datetime]:
    """Parse 'DD/MM/YYYY HH:MM[:SS]'; anything else yields None."""
    if not raw:
        return None
    candidate = ' '.join(raw.split())
    for fmt in PURCHASE_DATETIME_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue
    # Tolerate trailing text such as a timezone suffix after the time
    match = re.search(r'\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}(?::\d{2})?', candidate)
    if match and match.group(0) != candidate:
        return parse_purchase_datetime(match.group(0))
    return None


def parse_conversion_time(raw: Optional[str]) -> Optional[ConversionTime]:
    """
    Parse '<d>d <h>h <m>m <s>s'. Missing components default to 0.

    Returns None only when the label itself is absent (raw is None).
    """
    if raw is None:
        return None
    components = {}
    for name, pattern in DURATION_COMPONENTS.items():
        match = pattern.search(raw)
        components[name] = int(match.group(1)) if match else 0
    return ConversionTime(**components)


# =============================================================================
# PUBLIC API
# =============================================================================

def parse_sale_message(text: Optional[str]) -> SaleData:
    """
    Extract a SaleData from a payment bot notification.

    Args:
        text: Raw notification text, any line endings.

    Returns:
        SaleData with every field that could be located; the rest are None.
    """
    lines = (text or '').splitlines()

    sale = SaleData(
        client_id=parse_client_id(_find_label(lines, CLIENT_ID_LABEL)),
        plan=parse_plan(_find_label(lines, PLAN_LABEL)),
        value=parse_value(_find_label(lines, VALUE_LABEL)),
        purchase_datetime=parse_purchase_datetime(_find_label(lines, PURCHASE_DATETIME_LABEL)),
        conversion_time=parse_conversion_time(_find_label(lines, CONVERSION_TIME_LABEL)),
    )

    missing = missing_sale_fields(sale)
    if missing:
        logger.debug(f"Sale message parsed with missing fields: {', '.join(missing)}")

    return sale


def missing_sale_fields(sale: SaleData) -> List[str]:
    """Names of the SaleData fields the parser could not fill."""
    return [name for name in SALE_FIELDS if getattr(sale, name) is None]


def _render_value(value: Decimal) -> str:
    return 'R$ ' + format(value, 'f').replace('.', ',')


def _render_datetime(moment: datetime) -> str:
    fmt = '%d/%m/%Y %H:%M:%S' if moment.second else '%d/%m/%Y %H:%M'
    return moment.strftime(fmt)


def _render_conversion_time(duration: ConversionTime) -> str:
    return f"{duration.days}d {duration.hours}h {duration.minutes}m {duration.seconds}s"


_RENDERERS: Dict[str, Callable[[object], str]] = {
    'client_id': lambda value: f"🆔 ID Cliente: {value}",
    'plan': lambda value: f"📦 Plano: {value}",
    'value': lambda value: f"💰 Valor: {_render_value(value)}",
    'conversion_time': lambda value: f"⏳ Tempo Conversão: {_render_conversion_time(value)}",
    'purchase_datetime': lambda value: f"🕓 Data e Hora da compra: {_render_datetime(value)}",
}


def render_sale_message(sale: SaleData) -> str:
    """
    Render a SaleData back into the bot's labeled message format.

    Fields that are None are omitted, so parsing the result reproduces the
    same SaleData.
    """
    lines = ['🎉 Pagamento Aprovado!']
    for name, render in _RENDERERS.items():
        value = getattr(sale, name)
        if value is not None:
            lines.append(render(value))
    return '\n'.join(lines)
