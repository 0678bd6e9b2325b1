"""
PHI masking for impersonation sessions.

When an admin acts as another user, responses keep their shape but known
PHI fields are replaced with placeholders (HIPAA minimum necessary rule,
45 CFR 164.502(b)).
"""
from typing import Any, Callable, Dict

REDACTED = "[REDACTED]"
ADDRESS_HIDDEN = "[Address Hidden]"
DOB_MASK = "**/**/****"
ZIP_MASK = "*****"
SSN_MASK = "***-**-****"
PHONE_MASK = "***-***-****"
EMAIL_MASK = "***@***.com"


def _mask_email(value: Any) -> str:
    if not isinstance(value, str) or "@" not in value:
        return EMAIL_MASK
    return value[0] + EMAIL_MASK


def _mask_phone(value: Any) -> str:
    if not isinstance(value, str) or len(value) < 4:
        return PHONE_MASK
    return "***-***-" + value[-4:]


def _constant(placeholder: str) -> Callable[[Any], str]:
    return lambda _value: placeholder


_MASKERS_BY_FIELD: Dict[str, Callable[[Any], Any]] = {
    "first_name": _constant(REDACTED),
    "last_name": _constant(REDACTED),
    "email": _mask_email,
    "phone_number": _mask_phone,
    "phone": _mask_phone,
    "dob": _constant(DOB_MASK),
    "date_of_birth": _constant(DOB_MASK),
    "address": _constant(ADDRESS_HIDDEN),
    "address1": _constant(ADDRESS_HIDDEN),
    "address2": _constant(ADDRESS_HIDDEN),
    "apartment": _constant(ADDRESS_HIDDEN),
    "zip_code": _constant(ZIP_MASK),
    "postal_code": _constant(ZIP_MASK),
    "ssn": _constant(SSN_MASK),
    "social_security_number": _constant(SSN_MASK),
}


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


# Responses may use either naming convention
PHI_MASKERS: Dict[str, Callable[[Any], Any]] = {
    **_MASKERS_BY_FIELD,
    **{_camel_case(name): masker for name, masker in _MASKERS_BY_FIELD.items()},
}


def mask_value(key: str, value: Any) -> Any:
    """Mask a single value if its key is a known PHI field."""
    masker = PHI_MASKERS.get(key)
    if masker is not None and value is not None:
        return masker(value)
    return value


def mask_phi(data: Any) -> Any:
    """
    Return a copy of a JSON-like structure with PHI fields masked.

    Lists are masked element-wise, dicts key by key; scalars are returned
    unchanged. The input is never mutated.
    """
    if isinstance(data, list):
        return [mask_phi(item) for item in data]

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key in PHI_MASKERS:
                masked[key] = mask_value(key, value)
            elif isinstance(value, (dict, list)):
                masked[key] = mask_phi(value)
            else:
                masked[key] = value
        return masked

    return data
