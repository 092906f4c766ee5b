"""MutationController 测试：校验拦截、服务端错误映射到字段。"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from user_console.api_client import ApiResult
from user_console.errors import ConflictError, NotFoundError, ServerError, ValidationError
from user_console.mutation_controller import (
    DUPLICATE_EMAIL_MESSAGE,
    DUPLICATE_MOBILE_MESSAGE,
    MutationController,
    translate_error,
)
from user_console.schemas import UserForm


class TestCreate:
    async def test_create_success(self, api, db, valid_form):
        result = await MutationController(api).create(valid_form)
        assert result.ok
        assert result.value.email == "new.user@example.com"
        assert len(db.users) == 1

    async def test_invalid_form_makes_no_request(self, api, db, valid_form):
        form = valid_form.model_copy(update={"name": "A"})
        result = await MutationController(api).create(form)
        assert not result.ok
        assert result.error is None
        assert set(result.field_errors) == {"name"}
        assert db.requests == []

    async def test_duplicate_email_attaches_to_email(self, api, seeded, valid_form):
        form = valid_form.model_copy(update={"email": "jane@example.com"})
        result = await MutationController(api).create(form)
        assert isinstance(result.error, ConflictError)
        assert result.field_errors == {"email": DUPLICATE_EMAIL_MESSAGE}

    async def test_duplicate_mobile_attaches_to_mobile_number(self, api, seeded, valid_form):
        form = valid_form.model_copy(update={"mobile_number": seeded[0]["mobileNumber"]})
        result = await MutationController(api).create(form)
        assert result.field_errors == {"mobile_number": DUPLICATE_MOBILE_MESSAGE}

    async def test_envelope_error_email_already_exists(self, api, db, valid_form):
        db.next_response = (200, {"error": True, "payload": "email already exists"})
        result = await MutationController(api).create(valid_form)
        assert "email" in result.field_errors
        assert "general" not in result.field_errors

    async def test_server_error_goes_to_general(self, api, db, valid_form):
        db.next_response = (500, {"error": True, "payload": "boom"})
        result = await MutationController(api).create(valid_form)
        assert result.field_errors == {"general": "Server error. Please try again later."}


class TestUpdate:
    async def test_update_success(self, api, seeded, valid_form):
        result = await MutationController(api).update(seeded[0]["id"], valid_form)
        assert result.ok
        assert result.value.email == valid_form.email

    async def test_update_runs_validation_first(self):
        api = MagicMock()
        api.update_user = AsyncMock()
        result = await MutationController(api).update(1, UserForm(name="Jane Doe"))
        assert "email" in result.field_errors
        api.update_user.assert_not_awaited()

    async def test_update_missing_user(self, api, valid_form):
        result = await MutationController(api).update(99, valid_form)
        assert isinstance(result.error, NotFoundError)
        assert result.field_errors == {"general": "User not found"}


class TestRemove:
    async def test_remove(self, api, db, seeded):
        result = await MutationController(api).remove(seeded[0]["id"])
        assert result.ok
        assert seeded[0]["id"] not in db.users

    async def test_remove_skips_validation(self):
        api = MagicMock()
        api.delete_user = AsyncMock(return_value=ApiResult())
        result = await MutationController(api).remove(5)
        assert result.ok
        api.delete_user.assert_awaited_once_with(5)

    async def test_remove_missing(self, api):
        result = await MutationController(api).remove(42)
        assert isinstance(result.error, NotFoundError)
        assert result.field_errors == {"general": "User not found"}


class TestTranslateError:
    @pytest.mark.parametrize("error, expected", [
        (ConflictError("User with this email already exists"), {"email": DUPLICATE_EMAIL_MESSAGE}),
        (ConflictError("mobile number already exists"), {"mobile_number": DUPLICATE_MOBILE_MESSAGE}),
        (ValidationError("Invalid email format"), {"email": "Invalid email format"}),
        (ValidationError("Missing required fields: name"), {"general": "Missing required fields: name"}),
        (ServerError("email service down"), {"general": "email service down"}),
    ])
    def test_mapping(self, error, expected):
        assert translate_error(error, "Failed to create user") == expected

    def test_empty_message_uses_fallback(self):
        assert translate_error(ConflictError(""), "Failed to update user") == {"general": "Failed to update user"}
