from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from sso.api import deps
from sso.application.use_cases.check_login_code import CheckLoginCodeUseCase
from sso.application.use_cases.check_recovery_code import CheckRecoveryCodeUseCase
from sso.application.use_cases.federation import CompleteFederationUseCase, StartFederationUseCase
from sso.application.use_cases.login_code_manager import LoginCodeManager
from sso.application.use_cases.login_password import LoginPasswordUseCase
from sso.application.use_cases.logout_session import LogoutSessionUseCase
from sso.application.use_cases.parse_access_token import ParseAccessTokenUseCase
from sso.application.use_cases.refresh_session import RefreshSessionUseCase
from sso.application.use_cases.send_login_code import SendLoginCodeUseCase
from sso.application.use_cases.send_recovery_code import SendRecoveryCodeUseCase
from sso.application.use_cases.webauthn_ceremonies import WebAuthnCeremonyManager
from sso.main import app
from tests.fakes import (
    FINGERPRINT,
    FakeAuthPort,
    FakeCaptcha,
    FakeDevicesRepository,
    FakeEphemeralStateRepository,
    FakeFederationProvider,
    FakeFederationRegistry,
    FakeMailer,
    FakePasswordHasher,
    FakeWebAuthn,
    build_token_service,
)


class Services:
    def __init__(self):
        self.auth = FakeAuthPort()
        self.devices = FakeDevicesRepository()
        self.state = FakeEphemeralStateRepository()
        self.captcha = FakeCaptcha()
        self.mailer = FakeMailer()
        self.hasher = FakePasswordHasher()
        self.tokens = build_token_service()
        self.registry = FakeFederationRegistry([FakeFederationProvider()])
        self.webauthn = FakeWebAuthn()
        self.codes = LoginCodeManager(code_port=self.state, ttl_seconds={"login": 300, "recover": 900})

    def install(self) -> None:
        overrides = {
            deps.get_device: lambda: FINGERPRINT,
            deps.get_parse_access_token_use_case: lambda: ParseAccessTokenUseCase(token_port=self.tokens),
            deps.get_login_password_use_case: lambda: LoginPasswordUseCase(
                auth_port=self.auth,
                device_port=self.devices,
                revocation_port=self.devices,
                password_hasher=self.hasher,
                token_port=self.tokens,
                captcha_port=self.captcha,
            ),
            deps.get_send_login_code_use_case: lambda: SendLoginCodeUseCase(
                auth_port=self.auth,
                device_port=self.devices,
                revocation_port=self.devices,
                password_hasher=self.hasher,
                token_port=self.tokens,
                captcha_port=self.captcha,
                mail_port=self.mailer,
                code_manager=self.codes,
            ),
            deps.get_check_login_code_use_case: lambda: CheckLoginCodeUseCase(
                auth_port=self.auth,
                device_port=self.devices,
                revocation_port=self.devices,
                token_port=self.tokens,
                code_manager=self.codes,
            ),
            deps.get_refresh_session_use_case: lambda: RefreshSessionUseCase(
                auth_port=self.auth,
                device_port=self.devices,
                revocation_port=self.devices,
                token_port=self.tokens,
            ),
            deps.get_logout_session_use_case: lambda: LogoutSessionUseCase(revocation_port=self.devices),
            deps.get_send_recovery_code_use_case: lambda: SendRecoveryCodeUseCase(
                auth_port=self.auth,
                captcha_port=self.captcha,
                mail_port=self.mailer,
                code_manager=self.codes,
            ),
            deps.get_check_recovery_code_use_case: lambda: CheckRecoveryCodeUseCase(
                auth_port=self.auth,
                revocation_port=self.devices,
                password_hasher=self.hasher,
                code_manager=self.codes,
            ),
            deps.get_webauthn_ceremony_manager: lambda: WebAuthnCeremonyManager(
                auth_port=self.auth,
                ceremony_port=self.state,
                webauthn_port=self.webauthn,
                device_port=self.devices,
                revocation_port=self.devices,
                token_port=self.tokens,
                captcha_port=self.captcha,
            ),
            deps.get_start_federation_use_case: lambda: StartFederationUseCase(
                registry=self.registry,
                state_port=self.state,
            ),
            deps.get_complete_federation_use_case: lambda: CompleteFederationUseCase(
                registry=self.registry,
                state_port=self.state,
                auth_port=self.auth,
                device_port=self.devices,
                revocation_port=self.devices,
                token_port=self.tokens,
                password_hasher=self.hasher,
                success_url="https://app.example/welcome",
            ),
        }
        app.dependency_overrides.update(overrides)


@pytest.fixture
def services():
    services = Services()
    services.install()
    yield services
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app, follow_redirects=False)


def _cookies(response) -> dict[str, str]:
    values = {}
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        values[name] = rest.split(";", 1)[0]
    return values


def _login_body() -> dict:
    return {"email": "a@b.io", "password": "secret-pass", "captcha": "tok"}


def test_login_sets_both_cookies_and_access_parses(services, client):
    user = services.auth.add_user(email="a@b.io")

    response = client.post("/auth/jwt", json=_login_body())

    assert response.status_code == 200
    headers = response.headers.get_list("set-cookie")
    for header in headers:
        lowered = header.lower()
        assert "httponly" in lowered
        assert "samesite=strict" in lowered
        assert "path=/" in lowered
    cookies = _cookies(response)
    assert set(cookies) == {"access", "refresh"}

    parsed = client.post("/auth/jwt/parse", json={"token": cookies["access"]})
    assert parsed.status_code == 200
    assert parsed.json()["uid"] == user.id
    assert [role["name"] for role in parsed.json()["roles"]] == ["user"]


def test_login_unknown_user_is_not_found(services, client):
    response = client.post("/auth/jwt", json=_login_body())

    assert response.status_code == 404
    assert response.json() == {"errors": ["not found"]}


def test_login_wrong_password_is_unauthorized(services, client):
    services.auth.add_user(email="a@b.io")

    response = client.post("/auth/jwt", json={**_login_body(), "password": "nope"})

    assert response.status_code == 401
    assert response.json() == {"errors": ["invalid credentials"]}


def test_login_without_usable_device_info(services, client):
    del app.dependency_overrides[deps.get_device]
    services.auth.add_user(email="a@b.io")

    response = client.post("/auth/jwt", json=_login_body())

    assert response.status_code == 400
    assert response.json() == {"errors": ["no device info"]}


def test_malformed_body_is_bad_request(services, client):
    response = client.post("/auth/jwt", json={"email": "a@b.io"})
    assert response.status_code == 400
    assert response.json()["errors"]


def test_email_code_check_succeeds_once(services, client):
    services.auth.add_user(email="a@b.io")

    sent = client.post("/auth/email/send", json=_login_body())
    assert sent.status_code == 200
    assert sent.json()["code_sent"] is True
    assert set(_cookies(sent)) == {"access", "refresh"}

    body = {"email": "a@b.io", "code": services.mailer.last_code()}
    first = client.post("/auth/email/check", json=body)
    assert first.status_code == 200
    assert set(_cookies(first)) == {"access", "refresh"}

    second = client.post("/auth/email/check", json=body)
    assert second.status_code == 404
    assert second.json() == {"errors": ["code is not valid"]}


def test_refresh_is_revoked_after_logout(services, client):
    services.auth.add_user(email="a@b.io")
    login = _cookies(client.post("/auth/jwt", json=_login_body()))

    refreshed = client.post("/auth/jwt/refresh", headers={"Cookie": f"refresh={login['refresh']}"})
    assert refreshed.status_code == 200
    cookies = _cookies(refreshed)

    logout = client.post("/auth/logout", headers={"Authorization": f"Bearer {cookies['access']}"})
    assert logout.status_code == 200
    assert all("max-age=-1" in header.lower() or "max-age=0" in header.lower()
               for header in logout.headers.get_list("set-cookie"))

    again = client.post("/auth/jwt/refresh", headers={"Cookie": f"refresh={cookies['refresh']}"})
    assert again.status_code == 401
    assert again.json() == {"errors": ["token revoked"]}


def test_refresh_without_cookie_is_unauthorized(services, client):
    response = client.post("/auth/jwt/refresh")
    assert response.status_code == 401


def test_logout_requires_valid_token(services, client):
    assert client.post("/auth/logout").status_code == 401
    forged = client.post("/auth/logout", headers={"Authorization": "Bearer not-a-token"})
    assert forged.status_code == 403


def test_parse_rejects_garbage(services, client):
    response = client.post("/auth/jwt/parse", json={"token": "not-a-token"})
    assert response.status_code == 401


def test_federation_callback_with_unissued_state_is_not_found(services, client):
    response = client.get("/auth/oauth2/google/callback", params={"code": "C", "state": "S"})

    assert response.status_code == 404
    assert response.json() == {"errors": ["not found"]}


def test_federation_callback_with_denial_is_unauthorized(services, client):
    start = client.get("/auth/oauth2/google/start")
    assert start.status_code == 307
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]

    response = client.get(
        "/auth/oauth2/google/callback",
        params={"state": state, "error": "access_denied"},
    )

    assert response.status_code == 401


def test_federation_round_trip_redirects_with_cookies(services, client):
    start = client.get("/auth/oauth2/google/start")
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]

    response = client.get("/auth/oauth2/google/callback", params={"state": state, "code": "C"})

    assert response.status_code == 307
    assert response.headers["location"] == "https://app.example/welcome"
    assert set(_cookies(response)) == {"access", "refresh"}


def test_federation_unknown_provider_is_not_found(services, client):
    assert client.get("/auth/oauth2/github/start").status_code == 404


def test_federation_callback_replay_is_not_found(services, client):
    start = client.get("/auth/oauth2/google/start")
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]
    params = {"state": state, "code": "C"}

    first = client.get("/auth/oauth2/google/callback", params=params)
    assert first.status_code == 307

    replay = client.get("/auth/oauth2/google/callback", params=params)
    assert replay.status_code == 404
    assert replay.json() == {"errors": ["not found"]}


def test_expired_access_token_is_unauthorized(services, client):
    user = services.auth.add_user(email="a@b.io")
    pair = services.tokens.issue_pair(
        user_id=user.id,
        roles=user.roles,
        device_id="d-1",
        revocation_marker=0,
        now=datetime.now(timezone.utc) - timedelta(hours=2),
    )

    response = client.post("/auth/logout", headers={"Authorization": f"Bearer {pair.access_token}"})

    assert response.status_code == 401
    assert response.json() == {"errors": ["token expired"]}


def test_recovery_send_then_check_replaces_password(services, client):
    services.auth.add_user(email="a@b.io")

    sent = client.post("/auth/recovery/send", json={"email": "a@b.io", "captcha": "tok"})
    assert sent.status_code == 200
    assert services.mailer.sent[-1][1] == "recovery_code"

    wrong = client.post(
        "/auth/recovery/check",
        json={"email": "a@b.io", "code": "000000x", "new_password": "brand-new-pass"},
    )
    assert wrong.status_code == 404
    assert wrong.json() == {"errors": ["code is not valid"]}

    client.post("/auth/recovery/send", json={"email": "a@b.io", "captcha": "tok"})
    checked = client.post(
        "/auth/recovery/check",
        json={"email": "a@b.io", "code": services.mailer.last_code(), "new_password": "brand-new-pass"},
    )
    assert checked.status_code == 200

    assert client.post("/auth/jwt", json=_login_body()).status_code == 401
    relogin = client.post("/auth/jwt", json={**_login_body(), "password": "brand-new-pass"})
    assert relogin.status_code == 200


def test_recovery_send_unknown_user_is_not_found(services, client):
    response = client.post("/auth/recovery/send", json={"email": "ghost@b.io", "captcha": "tok"})

    assert response.status_code == 404
    assert services.mailer.sent == []


def _register_passkey(client, access: str) -> None:
    auth = {"Authorization": f"Bearer {access}"}
    options = client.post("/auth/webauthn/register/start", headers=auth)
    assert options.status_code == 200
    finish = client.post(
        "/auth/webauthn/register/finish",
        headers=auth,
        json={"id": "cred-1", "challenge": options.json()["challenge"]},
    )
    assert finish.status_code == 200


def test_webauthn_register_then_login_sets_cookies(services, client):
    services.auth.add_user(email="a@b.io")
    access = _cookies(client.post("/auth/jwt", json=_login_body()))["access"]
    _register_passkey(client, access)

    options = client.post("/auth/webauthn/login/start", json={"email": "a@b.io", "captcha": "tok"})
    assert options.status_code == 200
    assert options.json()["allowCredentials"] == ["cred-1"]

    response = client.post(
        "/auth/webauthn/login/finish",
        headers={"X-User-Email": "a@b.io"},
        json={"id": "cred-1", "challenge": options.json()["challenge"], "sign_count": 1},
    )

    assert response.status_code == 200
    assert set(_cookies(response)) == {"access", "refresh"}


def test_webauthn_register_requires_bearer(services, client):
    assert client.post("/auth/webauthn/register/start").status_code == 401


def test_webauthn_login_finish_without_email_header_is_bad_request(services, client):
    response = client.post("/auth/webauthn/login/finish", json={"id": "cred-1", "challenge": "c"})

    assert response.status_code == 400
    assert response.json() == {"errors": ["missing X-User-Email header"]}


def test_webauthn_login_start_without_passkeys_is_not_found(services, client):
    services.auth.add_user(email="a@b.io")

    response = client.post("/auth/webauthn/login/start", json={"email": "a@b.io", "captcha": "tok"})

    assert response.status_code == 404
