from __future__ import annotations

from dataclasses import dataclass

DEFAULT_STORAGE_NAMESPACE = "@digitox"
KEY_SEPARATOR = "_"
KEY_ESCAPE = "%"


def escape_key_part(value: str) -> str:
    """Percent-escape the escape character and the separator inside an id."""
    return value.replace(KEY_ESCAPE, "%25").replace(KEY_SEPARATOR, "%5F")


@dataclass(slots=True, frozen=True)
class CodeStorageKeys:
    """Key layout of the code database inside a flat store.

    ``<ns>_available_codes`` holds the pool, ``<ns>_assigned_codes`` the
    ledger, and ``<ns>_user_codes_<user_id>_<offer_id>`` one assignment each.
    Ids are escaped with :func:`escape_key_part`, so every (user, offer)
    pair gets its own key even when the ids contain ``_``.
    """

    namespace: str = DEFAULT_STORAGE_NAMESPACE

    @property
    def available_codes(self) -> str:
        return f"{self.namespace}{KEY_SEPARATOR}available_codes"

    @property
    def assigned_codes(self) -> str:
        return f"{self.namespace}{KEY_SEPARATOR}assigned_codes"

    @property
    def user_codes_prefix(self) -> str:
        return f"{self.namespace}{KEY_SEPARATOR}user_codes{KEY_SEPARATOR}"

    def user_code(self, user_id: str, offer_id: str) -> str:
        return f"{self.user_scope_prefix(user_id)}{escape_key_part(offer_id)}"

    def user_scope_prefix(self, user_id: str) -> str:
        return f"{self.user_codes_prefix}{escape_key_part(user_id)}{KEY_SEPARATOR}"

    def is_user_code(self, key: str) -> bool:
        return key.startswith(self.user_codes_prefix)
