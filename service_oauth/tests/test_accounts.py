"""
Unit tests for the in-memory account store.
"""

import pytest

from service_oauth.app.accounts import InMemoryAccountStore
from shared.errors import ValidationError


class TestInMemoryAccountStore:
    """Test cases for InMemoryAccountStore."""

    @pytest.fixture
    def store(self):
        return InMemoryAccountStore()

    def test_creates_user_on_first_login(self, store):
        result = store.update_or_create_user_from_external_service(
            "x",
            {"id": "u1", "accessToken": "tok1"},
            {"profile": {"name": "Ann"}},
        )

        assert result.type == "x"
        user = store.users[result.user_id]
        assert user.profile == {"name": "Ann"}
        assert user.services["x"] == {"id": "u1", "accessToken": "tok1"}

    def test_same_external_id_updates_user(self, store):
        first = store.update_or_create_user_from_external_service("x", {"id": "u1", "accessToken": "tok1"})
        second = store.update_or_create_user_from_external_service("x", {"id": "u1", "accessToken": "tok2"})

        assert first.user_id == second.user_id
        assert len(store.list_users()) == 1
        assert store.users[first.user_id].services["x"]["accessToken"] == "tok2"

    def test_stored_refresh_token_kept_when_omitted(self, store):
        first = store.update_or_create_user_from_external_service(
            "x", {"id": "u1", "accessToken": "tok1", "refreshToken": "ref1"}
        )
        store.update_or_create_user_from_external_service("x", {"id": "u1", "accessToken": "tok2"})

        service = store.users[first.user_id].services["x"]
        assert service["refreshToken"] == "ref1"
        assert service["accessToken"] == "tok2"

    def test_same_id_on_other_service_is_another_user(self, store):
        first = store.update_or_create_user_from_external_service("x", {"id": "u1"})
        second = store.update_or_create_user_from_external_service("y", {"id": "u1"})

        assert first.user_id != second.user_id

    def test_missing_id_rejected(self, store):
        with pytest.raises(ValidationError):
            store.update_or_create_user_from_external_service("x", {"accessToken": "tok1"})

    def test_login_result_serializes_with_user_id_alias(self, store):
        result = store.update_or_create_user_from_external_service("x", {"id": "u1"})

        assert result.model_dump(by_alias=True) == {"type": "x", "userId": result.user_id}
