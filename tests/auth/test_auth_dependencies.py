import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from rendezvous.auth import jwt_handler
from rendezvous.auth.dependencies import get_current_identity, get_current_profile, is_admin, require_admin
from rendezvous.models.user import Profile
from rendezvous.routes.auth_routes import me


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_get_current_identity_returns_token_subject() -> None:
    token = jwt_handler.create_access_token('u1')

    assert get_current_identity(_bearer(token)) == 'u1'


def test_get_current_identity_requires_credentials() -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_identity(None)

    assert exception_info.value.status_code == 401


def test_get_current_identity_rejects_garbage_token() -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_identity(_bearer('not-a-jwt'))

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_identity_rejects_expired_token() -> None:
    token = jwt_handler.create_access_token('u1', expires_minutes=-5)

    with pytest.raises(HTTPException) as exception_info:
        get_current_identity(_bearer(token))

    assert exception_info.value.status_code == 401


def test_get_current_profile_returns_profile(appointment_db, add_profile) -> None:
    add_profile('u1', 'client@example.com', 'Client One')

    profile = get_current_profile(identity='u1', db=appointment_db)

    assert profile.email == 'client@example.com'
    assert me(current_user=profile)['full_name'] == 'Client One'


def test_get_current_profile_rejects_unknown_identity(appointment_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_profile(identity='nobody', db=appointment_db)

    assert exception_info.value.status_code == 401


def test_require_admin_rejects_customers() -> None:
    with pytest.raises(HTTPException) as exception_info:
        require_admin(Profile(id='u1', email='client@example.com', role='customer'))

    assert exception_info.value.status_code == 403


def test_is_admin_is_case_insensitive() -> None:
    assert is_admin(Profile(id='a1', email='staff@example.com', role=' Admin ')) is True
    assert is_admin(None) is False
