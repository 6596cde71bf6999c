from unittest.mock import Mock

import pytest

from cleanapi.access_control.models import AuthContext
from cleanapi.platform.errors import PermissionDeniedError, RoleNotFoundError
from cleanapi.services import schemas
from cleanapi.services.user_service import UserService
from cleanapi.storage.models import UserModel

CTX = AuthContext(user_id="admin-1", role="admin")


def make_service():
    mock_repo = Mock()
    mock_authz = Mock()
    return UserService(mock_repo, mock_authz), mock_repo, mock_authz


def test_get_user():
    service, mock_repo, _ = make_service()
    mock_session = Mock()
    mock_repo.get.return_value = UserModel(id="u1", email="alice@example.com")

    assert service.get_user(mock_session, CTX, "u1").email == "alice@example.com"
    mock_repo.get.assert_called_with(mock_session, CTX, "u1")


def test_update_user_validates_role():
    service, mock_repo, mock_authz = make_service()
    mock_session = Mock()

    service.update_user(mock_session, CTX, "u1", schemas.UserUpdate(role="admin", first_name="Al"))

    mock_repo.authorize.assert_called_once_with(CTX, "update")
    mock_authz.validate_role.assert_called_once_with("admin")
    mock_repo.update.assert_called_with(mock_session, CTX, "u1", {"role": "admin", "first_name": "Al"})


def test_update_user_unknown_role():
    service, mock_repo, mock_authz = make_service()
    mock_authz.validate_role.side_effect = RoleNotFoundError("superuser")

    with pytest.raises(RoleNotFoundError):
        service.update_user(Mock(), CTX, "u1", schemas.UserUpdate(role="superuser"))
    mock_repo.update.assert_not_called()


def test_update_user_checks_permission_before_role():
    service, mock_repo, mock_authz = make_service()
    mock_repo.authorize.side_effect = PermissionDeniedError(
        role="user", resource="user:update", action="update", reason="no matching policy found"
    )

    with pytest.raises(PermissionDeniedError):
        service.update_user(Mock(), CTX, "missing", schemas.UserUpdate(role="superuser"))
    mock_authz.validate_role.assert_not_called()
    mock_repo.update.assert_not_called()


def test_update_user_without_role_skips_validation():
    service, mock_repo, mock_authz = make_service()
    mock_session = Mock()

    service.update_user(mock_session, CTX, "u1", schemas.UserUpdate(is_active=False))

    mock_authz.validate_role.assert_not_called()
    mock_repo.update.assert_called_with(mock_session, CTX, "u1", {"is_active": False})


def test_update_user_empty():
    service, mock_repo, _ = make_service()
    mock_session = Mock()

    service.update_user(mock_session, CTX, "u1", schemas.UserUpdate())
    mock_repo.update.assert_not_called()
    mock_repo.get.assert_called_with(mock_session, CTX, "u1")


def test_delete_and_list_users():
    service, mock_repo, _ = make_service()
    mock_session = Mock()
    mock_repo.list.return_value = []
    mock_repo.count.return_value = 0

    service.delete_user(mock_session, CTX, "u1")
    mock_repo.delete.assert_called_once_with(mock_session, CTX, "u1")

    assert service.list_users(mock_session, CTX) == ([], 0)
    mock_repo.list.assert_called_with(mock_session, CTX, limit=10, offset=0)
