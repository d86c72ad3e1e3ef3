import re
import unicodedata

from storefront_auth.errors import InvalidPhone

E164_PATTERN = re.compile(r"\+[1-9][0-9]{7,14}")


def _ascii_digits(raw_value: str) -> str:
    # Arabic-Indic and other decimal digits are folded to 0-9.
    return "".join(
        str(unicodedata.decimal(char)) if char.isdecimal() else char
        for char in raw_value
    )


def normalize_phone(raw_phone: str | int | None, default_country_code: str) -> str:
    """Return the E.164 form of ``raw_phone`` or raise ``InvalidPhone``.

    ``00`` is read as the international prefix and a single leading ``0`` as a
    national trunk prefix, replaced by ``default_country_code``. Bare digits
    are assumed to already carry a country code.
    """
    text = "" if raw_phone is None else str(raw_phone).strip()
    cleaned = re.sub(r"[^0-9+]", "", _ascii_digits(text))
    if cleaned.startswith("00"):
        cleaned = f"+{cleaned[2:]}"
    elif cleaned.startswith("0"):
        country_digits = re.sub(r"[^0-9]", "", default_country_code)
        if not country_digits:
            raise InvalidPhone("Default country code is not configured")
        cleaned = f"+{country_digits}{cleaned[1:]}"
    elif cleaned and not cleaned.startswith("+"):
        cleaned = f"+{cleaned}"
    if not E164_PATTERN.fullmatch(cleaned):
        raise InvalidPhone()
    return cleaned


def mask_phone(phone: str, visible_digits: int = 3) -> str:
    if len(phone) <= visible_digits:
        return phone
    return "*" * (len(phone) - visible_digits) + phone[-visible_digits:]
