"""Unit tests for core entities and events."""
from __future__ import annotations

import pytest

from firebase_account.core.entities.account_details import AccountDetails, AccountKey
from firebase_account.core.entities.identity import Identity
from firebase_account.core.entities.signup import AccountModifications
from firebase_account.core.events.account_events import IdentityStateChanged
from firebase_account.core.value_objects.person_name import PersonName


class TestAccountDetails:

    def test_build_drops_none(self):
        details = AccountDetails.build({
            AccountKey.ACCOUNT_ID: "uid-1",
            AccountKey.USER_ID: "jane@example.com",
            AccountKey.NAME: None,
        })
        assert details.account_id == "uid-1"
        assert details.user_id == "jane@example.com"
        assert AccountKey.NAME not in details
        assert len(details) == 2

    def test_keeps_false_flags(self):
        details = AccountDetails.build({AccountKey.IS_EMAIL_VERIFIED: False})
        assert AccountKey.IS_EMAIL_VERIFIED in details
        assert details.is_email_verified is False

    def test_custom_keys(self):
        details = AccountDetails.build({AccountKey.ACCOUNT_ID: "uid-1"}, plan="pro")
        assert details["plan"] == "pro"
        assert set(details) == {"accountId", "plan"}

    def test_with_values_returns_copy(self):
        details = AccountDetails.build({AccountKey.ACCOUNT_ID: "uid-1", AccountKey.USER_ID: "a@example.com"})
        updated = details.with_values({AccountKey.USER_ID: "b@example.com", AccountKey.ACCOUNT_ID: None})

        assert details.user_id == "a@example.com"
        assert updated.user_id == "b@example.com"
        assert updated.account_id is None

    def test_immutable(self):
        details = AccountDetails.build({AccountKey.ACCOUNT_ID: "uid-1"})
        with pytest.raises(TypeError):
            details._values["accountId"] = "other"

    def test_name_property(self):
        name = PersonName.parse("Jane Doe")
        details = AccountDetails.build({AccountKey.NAME: name})
        assert details.name == name
        assert details.to_dict() == {"name": name}


class TestAccountModifications:

    def test_sensitive(self):
        assert AccountModifications(user_id="new@example.com").is_sensitive
        assert AccountModifications(password="secret123").is_sensitive
        assert not AccountModifications(name=PersonName.parse("Jane Doe")).is_sensitive

    def test_empty(self):
        assert AccountModifications().is_empty
        assert not AccountModifications(password="secret123").is_empty


class TestIdentityStateChanged:

    def test_removed(self):
        assert IdentityStateChanged(None).removed
        assert not IdentityStateChanged(Identity(uid="u1")).removed

    def test_annotated_keeps_other_fields(self):
        event = IdentityStateChanged(Identity(uid="u1"), provider_id="email-password", sequence=3)
        annotated = event.annotated(is_new_user=True)
        assert annotated.is_new_user is True
        assert annotated.sequence == 3
        assert annotated.provider_id == "email-password"
        assert event.is_new_user is False
