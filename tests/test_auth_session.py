import json

import pytest

from menswear_ops.exceptions import AuthError, ServiceError
from menswear_ops.models import AuthUser, UserRole
from menswear_ops.session import SessionContext, SessionStore


@pytest.fixture
def users(db):
    return db.seed(
        "users",
        {"email": "sam@example.co.uk", "first_name": "Sam", "last_name": "Taylor", "role": "staff",
         "pin_code": "1234", "is_active": True},
        {"email": "old@example.co.uk", "first_name": "Former", "last_name": "Staff", "role": "staff",
         "pin_code": "5555", "is_active": False},
    )


class TestAuthService:
    """Unit tests for AuthService"""

    @pytest.mark.asyncio
    async def test_login_persists_session(self, auth_service, users, session_file):
        """Test a valid PIN logs in and writes the user with camelCase keys"""
        user = await auth_service.login_with_pin("1234")

        assert user.id == users[0]["id"]
        assert user.full_name == "Sam Taylor"
        assert user.last_login is not None
        assert auth_service.get_current_user() == user

        saved = json.loads(session_file.path.read_text())
        assert saved["firstName"] == "Sam"
        assert saved["lastName"] == "Taylor"
        assert saved["role"] == "staff"
        assert "lastLogin" in saved

    @pytest.mark.asyncio
    async def test_login_records_last_pin_login_and_activity(self, auth_service, users, db):
        await auth_service.login_with_pin("1234")

        assert db.tables["users"][0]["last_pin_login"]
        entry = db.activity()[-1]
        assert entry["p_action"] == "login"
        assert entry["p_user_identifier"] == users[0]["id"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("pin", ["", "123", "12345", "12a4", None])
    async def test_malformed_pin_rejected_without_request(self, auth_service, db, pin):
        """Test only four-digit PINs reach the backend"""
        with pytest.raises(AuthError) as exc_info:
            await auth_service.login_with_pin(pin)

        assert exc_info.value.message == "Invalid PIN"
        assert db.executed == []

    @pytest.mark.asyncio
    async def test_unknown_pin(self, auth_service, users):
        with pytest.raises(AuthError) as exc_info:
            await auth_service.login_with_pin("9999")

        assert exc_info.value.message == "Invalid PIN"
        assert auth_service.get_current_user() is None

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_log_in(self, auth_service, users):
        """Test deactivated staff are rejected like an unknown PIN"""
        with pytest.raises(AuthError):
            await auth_service.login_with_pin("5555")

    @pytest.mark.asyncio
    async def test_backend_failure_is_login_failed(self, auth_service, db):
        db.fail("users", "select")

        with pytest.raises(AuthError) as exc_info:
            await auth_service.login_with_pin("1234")

        assert exc_info.value.message == "Login failed"
        assert isinstance(exc_info.value.__cause__, ServiceError)

    @pytest.mark.asyncio
    async def test_last_login_update_failure_is_not_fatal(self, auth_service, users, db):
        """Test a failed last_pin_login write still completes the login"""
        db.fail("users", "update")

        user = await auth_service.login_with_pin("1234")

        assert user.first_name == "Sam"
        assert auth_service.session.is_authenticated

    @pytest.mark.asyncio
    async def test_logout_clears_session_file(self, auth_service, users, db, session_file):
        await auth_service.login_with_pin("1234")

        await auth_service.logout()

        assert auth_service.get_current_user() is None
        assert not session_file.path.exists()
        assert db.activity()[-1]["p_action"] == "logout"


class TestSessionStore:
    """Unit tests for the saved session file"""

    def test_round_trip(self, session_file, staff_user):
        session_file.save(staff_user)

        restored = SessionContext.restore(session_file)

        assert restored.user == staff_user
        assert restored.actor_identifier == "user-1"

    def test_missing_file(self, session_file):
        assert session_file.load() is None
        assert SessionContext.restore(session_file).is_authenticated is False

    def test_corrupt_file_is_ignored(self, tmp_path):
        """Test unreadable JSON yields no user instead of an error"""
        path = tmp_path / "session.json"
        path.write_text("{not json")

        assert SessionStore(path).load() is None

    def test_incomplete_user_is_ignored(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text(json.dumps({"id": "user-1"}))

        assert SessionStore(path).load() is None

    def test_reads_camel_case(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text(json.dumps({
            "id": "user-1", "email": "sam@example.co.uk", "firstName": "Sam", "lastName": "Taylor",
            "role": "admin",
        }))

        user = SessionStore(path).load()

        assert user.role == UserRole.ADMIN
        assert user.is_admin

    def test_clear_without_file(self, session_file):
        session_file.clear()

        assert not session_file.path.exists()

    def test_anonymous_actor(self):
        assert SessionContext().actor_identifier == "anonymous"


class TestAdminService:
    """Unit tests for AdminService"""

    @pytest.mark.asyncio
    async def test_requires_login(self, admin_service):
        with pytest.raises(AuthError) as exc_info:
            await admin_service.list_pin_attempts()

        assert exc_info.value.message == "Not authenticated"

    @pytest.mark.asyncio
    async def test_rejects_staff(self, admin_service, staff_user, db):
        """Test a staff session cannot reach admin RPCs"""
        admin_service.session.login(staff_user)

        with pytest.raises(AuthError) as exc_info:
            await admin_service.reset_pin_attempts("abc123")

        assert exc_info.value.message == "Admin access required"
        assert db.rpc_calls == []

    @pytest.mark.asyncio
    async def test_lists_attempts(self, admin_service, admin_user, db):
        admin_service.session.login(admin_user)
        db.rpc_handlers["pin_list_attempts"] = lambda params: [
            {"pin_hash": "abc123", "attempts": 5, "lock_until": "2026-06-01T10:15:00+00:00"},
        ]

        attempts = await admin_service.list_pin_attempts()

        assert attempts[0].pin_hash == "abc123"
        assert attempts[0].attempts == 5
        assert attempts[0].lock_until is not None

    @pytest.mark.asyncio
    async def test_reset_passes_hash(self, admin_service, admin_user, db):
        admin_service.session.login(admin_user)
        db.rpc_handlers["pin_reset_attempts"] = lambda params: None

        await admin_service.reset_pin_attempts("abc123")

        assert ("pin_reset_attempts", {"p_pin_hash": "abc123"}) in db.rpc_calls
        assert db.activity()[-1]["p_user_identifier"] == "admin-1"

    @pytest.mark.asyncio
    async def test_rpc_failure(self, admin_service, admin_user):
        """Test a missing RPC surfaces as a ServiceError"""
        admin_service.session.login(admin_user)

        with pytest.raises(ServiceError) as exc_info:
            await admin_service.list_pin_attempts()

        assert exc_info.value.message.startswith("Failed to load PIN attempts:")


def test_auth_user_dumps_camel_case(staff_user):
    payload = staff_user.model_dump(by_alias=True)

    assert payload["firstName"] == "Sam"
    assert AuthUser.model_validate(payload) == staff_user
