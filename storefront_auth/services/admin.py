import logging

from storefront_auth.errors import InvalidPhone
from storefront_auth.services.phone import normalize_phone

LOGGER = logging.getLogger(__name__)


class AdminPolicy:
    """Phones listed in ADMIN_PHONES are promoted to admin when they sign in."""

    def __init__(self, raw_allow_list: str, default_country_code: str) -> None:
        self._phones = frozenset(_parse_allow_list(raw_allow_list, default_country_code))

    @property
    def phones(self) -> frozenset[str]:
        return self._phones

    def is_admin_phone(self, phone: str) -> bool:
        return phone in self._phones


def _parse_allow_list(raw_allow_list: str, default_country_code: str) -> list[str]:
    phones = []
    for part in raw_allow_list.split(","):
        if not part.strip():
            continue
        try:
            phones.append(normalize_phone(part, default_country_code))
        except InvalidPhone:
            LOGGER.warning("Ignoring invalid admin phone entry %r", part.strip())
    return phones
