"""
Field validators shared by the module schemas
"""
import re
from typing import Optional


def validate_phone(phone: str) -> bool:
    """
    Validate an international phone number.
    Accepted: optional leading +, digits grouped with spaces, dashes,
    dots or parentheses, 7 to 15 digits in total.
    Examples: +1 (555) 123-4567, 555.123.4567
    """
    if not re.fullmatch(r'\+?[\d\s\-\(\)\.]+', phone):
        return False

    digits = re.sub(r'\D', '', phone)
    return 7 <= len(digits) <= 15


def format_phone(phone: str) -> str:
    """
    Collapse repeated whitespace in a phone number, leaving the
    grouping the user typed untouched.
    """
    if not validate_phone(phone):
        return phone
    return re.sub(r'\s+', ' ', phone.strip())


def validate_currency_code(code: str) -> bool:
    """ISO 4217 style code: exactly three letters."""
    return bool(re.fullmatch(r'[A-Za-z]{3}', code or ''))


def normalize_code(value: Optional[str]) -> Optional[str]:
    """
    Normalize identifiers such as SKUs, account codes and currency codes:
    strip surrounding whitespace and upper-case.
    """
    if value is None:
        return None
    return value.strip().upper()


def validate_tax_id(tax_id: str) -> bool:
    """
    Tax identification numbers vary per country; accept letters, digits
    and the separators - . / with 4 to 20 significant characters.
    """
    if not re.fullmatch(r'[A-Za-z0-9\-\./\s]+', tax_id):
        return False
    significant = re.sub(r'[\-\./\s]', '', tax_id)
    return 4 <= len(significant) <= 20
