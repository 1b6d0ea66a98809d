"""Canonical account detail document published to the account store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Union

from firebase_account.core.value_objects.person_name import PersonName


class AccountKey(str, Enum):
    ACCOUNT_ID = "accountId"
    USER_ID = "userId"
    IS_EMAIL_VERIFIED = "isEmailVerified"
    NAME = "name"
    CREATION_DATE = "creationDate"
    LAST_SIGN_IN_DATE = "lastSignInDate"


KeyLike = Union[AccountKey, str]


def _key(key: KeyLike) -> str:
    return key.value if isinstance(key, AccountKey) else key


@dataclass(frozen=True)
class AccountDetails:
    """Immutable set of account attributes keyed by attribute type.

    Custom attributes use plain string keys. A new instance is built for every
    update; ``with_values`` returns a modified copy.
    """

    _values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_values", MappingProxyType(dict(self._values)))

    @classmethod
    def build(cls, values: Optional[Mapping[KeyLike, Any]] = None, **custom: Any) -> AccountDetails:
        merged = {_key(k): v for k, v in (values or {}).items() if v is not None}
        merged.update({k: v for k, v in custom.items() if v is not None})
        return cls(merged)

    def with_values(self, values: Mapping[KeyLike, Any]) -> AccountDetails:
        merged = dict(self._values)
        for key, value in values.items():
            if value is None:
                merged.pop(_key(key), None)
            else:
                merged[_key(key)] = value
        return AccountDetails(merged)

    def get(self, key: KeyLike, default: Any = None) -> Any:
        return self._values.get(_key(key), default)

    def __getitem__(self, key: KeyLike) -> Any:
        return self._values[_key(key)]

    def __contains__(self, key: object) -> bool:
        if isinstance(key, (AccountKey, str)):
            return _key(key) in self._values
        return False

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    # -- well-known attributes -------------------------------------------------

    @property
    def account_id(self) -> Optional[str]:
        return self.get(AccountKey.ACCOUNT_ID)

    @property
    def user_id(self) -> Optional[str]:
        return self.get(AccountKey.USER_ID)

    @property
    def is_email_verified(self) -> bool:
        return bool(self.get(AccountKey.IS_EMAIL_VERIFIED, False))

    @property
    def name(self) -> Optional[PersonName]:
        return self.get(AccountKey.NAME)

    @property
    def creation_date(self) -> Optional[datetime]:
        return self.get(AccountKey.CREATION_DATE)

    @property
    def last_sign_in_date(self) -> Optional[datetime]:
        return self.get(AccountKey.LAST_SIGN_IN_DATE)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)
