from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from sso.api import deps
from sso.application.use_cases.authorize_device_access import AuthorizeDeviceAccessUseCase
from sso.application.use_cases.check_email_exists import CheckEmailExistsUseCase
from sso.application.use_cases.get_me import GetMeUseCase
from sso.application.use_cases.manage_devices import (
    DeleteDeviceUseCase,
    GetDeviceUseCase,
    ListDevicesUseCase,
    RenameDeviceUseCase,
)
from sso.application.use_cases.parse_access_token import ParseAccessTokenUseCase
from sso.application.use_cases.register_user import RegisterUserUseCase
from sso.domain.services.device_fingerprint import describe_device
from sso.main import app
from tests.fakes import (
    FINGERPRINT,
    NOW,
    FakeAuthPort,
    FakeDevicesRepository,
    FakePasswordHasher,
    build_token_service,
)


class Services:
    def __init__(self):
        self.auth = FakeAuthPort()
        self.devices = FakeDevicesRepository()
        self.tokens = build_token_service()

    def install(self) -> None:
        app.dependency_overrides.update(
            {
                deps.get_parse_access_token_use_case: lambda: ParseAccessTokenUseCase(token_port=self.tokens),
                deps.get_authorize_device_access_use_case: lambda: AuthorizeDeviceAccessUseCase(
                    device_port=self.devices
                ),
                deps.get_list_devices_use_case: lambda: ListDevicesUseCase(device_port=self.devices),
                deps.get_get_device_use_case: lambda: GetDeviceUseCase(device_port=self.devices),
                deps.get_rename_device_use_case: lambda: RenameDeviceUseCase(device_port=self.devices),
                deps.get_delete_device_use_case: lambda: DeleteDeviceUseCase(device_port=self.devices),
                deps.get_register_user_use_case: lambda: RegisterUserUseCase(
                    auth_port=self.auth,
                    password_hasher=FakePasswordHasher(),
                ),
                deps.get_check_email_exists_use_case: lambda: CheckEmailExistsUseCase(auth_port=self.auth),
                deps.get_get_me_use_case: lambda: GetMeUseCase(auth_port=self.auth),
            }
        )

    def bearer(self, user) -> dict[str, str]:
        pair = self.tokens.issue_pair(
            user_id=user.id,
            roles=user.roles,
            device_id="unused",
            revocation_marker=0,
            now=datetime.now(timezone.utc),
        )
        return {"Authorization": f"Bearer {pair.access_token}"}

    def device_for(self, user):
        return self.devices.upsert_device(
            user_id=user.id,
            fingerprint=FINGERPRINT,
            profile=describe_device(FINGERPRINT.user_agent),
            now=NOW,
        )


@pytest.fixture
def services():
    services = Services()
    services.install()
    yield services
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_owner_can_rename_device(services, client):
    owner = services.auth.add_user(email="owner@b.io")
    device = services.device_for(owner)

    response = client.put(f"/device/{device.id}", json={"name": "Laptop"}, headers=services.bearer(owner))

    assert response.status_code == 200
    assert response.json()["name"] == "Laptop"


def test_non_owner_cannot_rename_device(services, client):
    owner = services.auth.add_user(email="owner@b.io")
    stranger = services.auth.add_user(email="stranger@b.io")
    device = services.device_for(owner)

    response = client.put(f"/device/{device.id}", json={"name": "Mine now"}, headers=services.bearer(stranger))

    assert response.status_code == 403
    assert response.json() == {"errors": ["not authorized"]}
    assert services.devices.devices[device.id].name == "My desktop"


def test_admin_can_delete_any_device(services, client):
    owner = services.auth.add_user(email="owner@b.io")
    admin = services.auth.add_user(email="admin@b.io", roles=("admin",))
    device = services.device_for(owner)

    response = client.delete(f"/device/{device.id}", headers=services.bearer(admin))

    assert response.status_code == 204
    assert services.devices.devices == {}


def test_list_devices_returns_callers_devices(services, client):
    owner = services.auth.add_user(email="owner@b.io")
    other = services.auth.add_user(email="other@b.io")
    device = services.device_for(owner)
    services.device_for(other)

    response = client.get("/device", headers=services.bearer(owner))

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [device.id]
    assert client.get(f"/device/{device.id}", headers=services.bearer(other)).status_code == 404


def test_device_routes_require_token(services, client):
    assert client.get("/device").status_code == 401


def test_register_exists_and_me(services, client):
    created = client.post(
        "/users",
        json={"name": "Alice", "email": "alice@b.io", "password": "secret-pass"},
    )
    assert created.status_code == 201
    assert created.json()["user"]["roles"] == ["user"]

    duplicate = client.post(
        "/users",
        json={"name": "Alice", "email": "alice@b.io", "password": "secret-pass"},
    )
    assert duplicate.status_code == 409

    assert client.post("/users/exists", json={"email": "alice@b.io"}).json() == {"exists": True}
    assert client.post("/users/exists", json={"email": "bob@b.io"}).json() == {"exists": False}

    user = services.auth.get_user_by_email(email="alice@b.io")
    me = client.get("/users/me", headers=services.bearer(user))
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "alice@b.io"
    assert me.json()["permissions"] == ["device:read"]
