"""AppState bootstrap ordering, session restore and account operations."""
import pytest

from uninotes.errors import ValidationFailed
from uninotes.schemas.user import ProfileUpdate, RegisterRequest
from uninotes.storage import keys


def _register(state, email="alice@x.com", name="Alice Wonder"):
    return state.register(RegisterRequest(full_name=name, email=email, faculty="Engineering", prodi="CS"))


def test_first_bootstrap_report(state):
    report = state.bootstrap()
    assert report.migrations_applied == [1, 2, 3]
    assert report.admin_status == "created"
    assert report.session_restored is False
    assert state.bootstrapped is True
    assert state.current_user is None


def test_second_bootstrap_changes_nothing(state):
    state.bootstrap()
    report = state.bootstrap()
    assert report.migrations_applied == []
    assert report.admin_status == "unchanged"


def test_register_starts_session_with_user_role(state):
    state.bootstrap()
    user = _register(state)
    assert user["role"] == "user"
    assert user["isSuperAdmin"] is False
    assert state.current_user == user
    assert state.store.get(keys.SESSION_USER)["email"] == "alice@x.com"


def test_register_duplicate_email_rejected(state):
    state.bootstrap()
    _register(state)
    with pytest.raises(ValidationFailed) as exc:
        _register(state, name="Someone Else")
    assert exc.value.field == "email"
    assert state.users.find_by_email("alice@x.com")["fullName"] == "Alice Wonder"


def test_register_cannot_overwrite_super_admin(state):
    state.bootstrap()
    with pytest.raises(ValidationFailed):
        _register(state, email="admin@uninotes.com")
    assert state.users.find_by_email("admin@uninotes.com")["isSuperAdmin"] is True


def test_login_unknown_email(state):
    state.bootstrap()
    with pytest.raises(ValidationFailed):
        state.login("ghost@x.com")
    assert state.current_user is None


def test_session_restore_picks_up_role_change(state):
    state.bootstrap()
    _register(state)
    state.users.promote("alice@x.com")
    # saved session still says role=user; restore reads the users mapping
    state.current_user = None
    assert state.restore_session() is True
    assert state.current_user["role"] == "admin"


def test_session_restore_clears_orphaned_session(state):
    state.store.set(keys.SESSION_USER, {"email": "gone@x.com", "role": "user"})
    report = state.bootstrap()
    assert report.session_restored is False
    assert not state.store.has(keys.SESSION_USER)


def test_logout(state):
    state.bootstrap()
    _register(state)
    state.logout()
    assert state.current_user is None
    assert not state.store.has(keys.SESSION_USER)


def test_update_profile_keeps_email_and_role(state):
    state.bootstrap()
    state.login("admin@uninotes.com")
    updated = state.update_profile(ProfileUpdate(full_name="Root Admin", faculty="Rectorate"))
    assert updated["fullName"] == "Root Admin"
    assert updated["faculty"] == "Rectorate"
    assert updated["role"] == "admin"
    assert updated["isSuperAdmin"] is True
    assert state.users.find_by_email("admin@uninotes.com")["fullName"] == "Root Admin"


def test_update_profile_rejects_short_name(state):
    state.bootstrap()
    _register(state)
    with pytest.raises(ValidationFailed):
        state.update_profile(ProfileUpdate(full_name="Al"))


def test_update_profile_requires_session(state):
    state.bootstrap()
    with pytest.raises(ValidationFailed):
        state.update_profile(ProfileUpdate(faculty="X"))
