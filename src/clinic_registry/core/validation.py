"""Input normalization and validation for Brazilian tax ids and emails.

CPF identifies individuals (11 digits). CNPJ identifies companies (14 chars);
since 2026 the first 12 characters may be alphanumeric, the last two are
always numeric check digits. Both use mod-11 check digits; for CNPJ each
character is valued ``ord(c) - 48`` so digits keep their numeric value.
"""

import re
from typing import Optional, Union
from uuid import UUID

from email_validator import EmailNotValidError, validate_email as _validate_email

from .enums import PersonType
from .errors import ValidationError
from .ids import parse_uuid7

_NON_DIGITS = re.compile(r"\D")
_NON_ALPHANUMERIC = re.compile(r"[^0-9A-Za-z]")
_CNPJ_SHAPE = re.compile(r"^[0-9A-Z]{12}[0-9]{2}$")

_CNPJ_FIRST_WEIGHTS = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
_CNPJ_SECOND_WEIGHTS = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)


def normalize_cpf(raw: str) -> str:
    """Strip everything but digits."""
    return _NON_DIGITS.sub("", raw or "")


def normalize_cnpj(raw: str) -> str:
    """Strip everything but letters and digits, upper-cased."""
    return _NON_ALPHANUMERIC.sub("", (raw or "").strip()).upper()


def _cpf_check_digit(digits: str) -> int:
    weight = len(digits) + 1
    total = sum(int(d) * (weight - i) for i, d in enumerate(digits))
    remainder = (total * 10) % 11
    return 0 if remainder == 10 else remainder


def validate_cpf(cpf: str) -> bool:
    """Validate a CPF, accepting formatted or bare input."""
    cpf = normalize_cpf(cpf)
    if len(cpf) != 11 or cpf == cpf[0] * 11:
        return False
    first = _cpf_check_digit(cpf[:9])
    second = _cpf_check_digit(cpf[:9] + str(first))
    return cpf[9:] == f"{first}{second}"


def _cnpj_check_digit(chars: str, weights) -> int:
    total = sum((ord(c) - 48) * w for c, w in zip(chars, weights))
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def validate_cnpj(cnpj: str) -> bool:
    """Validate a numeric or alphanumeric CNPJ, accepting formatted input."""
    cnpj = normalize_cnpj(cnpj)
    if not _CNPJ_SHAPE.match(cnpj) or cnpj == cnpj[0] * 14:
        return False
    first = _cnpj_check_digit(cnpj[:12], _CNPJ_FIRST_WEIGHTS)
    second = _cnpj_check_digit(cnpj[:12] + str(first), _CNPJ_SECOND_WEIGHTS)
    return cnpj[12:] == f"{first}{second}"


def normalize_and_validate_tax_id(person_type: PersonType, raw: str) -> str:
    """Normalize a tax id for the given person type, raising on bad check digits."""
    if person_type == PersonType.COMPANY:
        tax_id = normalize_cnpj(raw)
        if not validate_cnpj(tax_id):
            raise ValidationError("invalid CNPJ")
        return tax_id

    tax_id = normalize_cpf(raw)
    if not validate_cpf(tax_id):
        raise ValidationError("invalid CPF")
    return tax_id


def validate_email(email: str) -> bool:
    """RFC 5322 syntax check, no DNS lookups."""
    email = (email or "").strip()
    if not email:
        return False
    try:
        _validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Trim a value; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def ensure_valid_email(email: Optional[str]) -> Optional[str]:
    """Return the trimmed email (None when blank), raising when malformed."""
    email = clean_optional(email)
    if email is not None and not validate_email(email):
        raise ValidationError("invalid email")
    return email


def require_text(value: Optional[str], field_name: str) -> str:
    """Return the trimmed value, raising when missing or blank."""
    value = clean_optional(value)
    if value is None:
        raise ValidationError(f"{field_name} is required")
    return value


def require_uuid7(value: Union[str, UUID, None], field_name: str) -> UUID:
    """Parse an id that must be a UUIDv7, raising ValidationError otherwise."""
    parsed = parse_uuid7(value)
    if parsed is None:
        raise ValidationError(f"{field_name} must be a UUIDv7")
    return parsed
