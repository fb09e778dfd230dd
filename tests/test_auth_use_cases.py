from __future__ import annotations

import pytest

from sso.application.dto.auth import (
    CheckLoginCodeInput,
    CheckRecoveryCodeInput,
    LoginPasswordInput,
    LogoutInput,
    RefreshSessionInput,
    RegisterUserInput,
    SendLoginCodeInput,
    SendRecoveryCodeInput,
)
from sso.application.use_cases.check_login_code import CheckLoginCodeUseCase
from sso.application.use_cases.check_recovery_code import CheckRecoveryCodeUseCase
from sso.application.use_cases.login_code_manager import LoginCodeManager
from sso.application.use_cases.login_password import LoginPasswordUseCase
from sso.application.use_cases.logout_session import LogoutSessionUseCase
from sso.application.use_cases.refresh_session import RefreshSessionUseCase
from sso.application.use_cases.register_user import RegisterUserUseCase
from sso.application.use_cases.send_login_code import SendLoginCodeUseCase
from sso.application.use_cases.send_recovery_code import SendRecoveryCodeUseCase
from sso.domain.entities.device import DeviceFingerprint
from sso.domain.exceptions import (
    AlreadyExistsError,
    CaptchaInvalidError,
    CodeNotValidError,
    InvalidCredentialsError,
    NotFoundError,
    TokenRevokedError,
)
from tests.fakes import (
    FINGERPRINT,
    FakeAuthPort,
    FakeCaptcha,
    FakeDevicesRepository,
    FakeEphemeralStateRepository,
    FakeMailer,
    FakePasswordHasher,
    build_token_service,
)


class Harness:
    def __init__(self, *, captcha_valid: bool = True):
        self.auth = FakeAuthPort()
        self.devices = FakeDevicesRepository()
        self.state = FakeEphemeralStateRepository()
        self.captcha = FakeCaptcha(valid=captcha_valid)
        self.mailer = FakeMailer()
        self.hasher = FakePasswordHasher()
        self.tokens = build_token_service()
        self.codes = LoginCodeManager(
            code_port=self.state,
            ttl_seconds={"login": 300, "recover": 900},
        )

    def login_password(self) -> LoginPasswordUseCase:
        return LoginPasswordUseCase(
            auth_port=self.auth,
            device_port=self.devices,
            revocation_port=self.devices,
            password_hasher=self.hasher,
            token_port=self.tokens,
            captcha_port=self.captcha,
        )

    def send_login_code(self) -> SendLoginCodeUseCase:
        return SendLoginCodeUseCase(
            auth_port=self.auth,
            device_port=self.devices,
            revocation_port=self.devices,
            password_hasher=self.hasher,
            token_port=self.tokens,
            captcha_port=self.captcha,
            mail_port=self.mailer,
            code_manager=self.codes,
        )

    def check_login_code(self) -> CheckLoginCodeUseCase:
        return CheckLoginCodeUseCase(
            auth_port=self.auth,
            device_port=self.devices,
            revocation_port=self.devices,
            token_port=self.tokens,
            code_manager=self.codes,
        )

    def refresh(self) -> RefreshSessionUseCase:
        return RefreshSessionUseCase(
            auth_port=self.auth,
            device_port=self.devices,
            revocation_port=self.devices,
            token_port=self.tokens,
        )


def _password_input(email: str = "a@b.io", password: str = "secret-pass") -> LoginPasswordInput:
    return LoginPasswordInput(
        email=email,
        password=password,
        captcha_token="tok",
        fingerprint=FINGERPRINT,
    )


def test_login_password_issues_pair_bound_to_device():
    h = Harness()
    user = h.auth.add_user(email="a@b.io")

    output = h.login_password().execute(_password_input())

    assert output.user_id == user.id
    device = h.devices.get_device_by_id(device_id=output.device_id)
    assert device.ip == "1.2.3.4"
    assert device.user_agent == "UA/1"
    claims = h.tokens.decode_access_token(token=output.access_token)
    assert claims.user_id == user.id
    assert [role.name for role in claims.roles] == ["user"]
    assert h.captcha.calls == [("tok", "auth")]


def test_login_password_reuses_device_for_same_fingerprint():
    h = Harness()
    h.auth.add_user(email="a@b.io")

    first = h.login_password().execute(_password_input())
    second = h.login_password().execute(_password_input())

    assert first.device_id == second.device_id
    assert len(h.devices.devices) == 1


def test_login_password_unknown_user_is_not_found():
    h = Harness()
    with pytest.raises(NotFoundError):
        h.login_password().execute(_password_input(email="nobody@b.io"))


def test_login_password_wrong_password_is_invalid_credentials():
    h = Harness()
    h.auth.add_user(email="a@b.io")
    with pytest.raises(InvalidCredentialsError):
        h.login_password().execute(_password_input(password="wrong"))
    assert h.devices.devices == {}


def test_login_password_rejected_captcha_stops_before_lookup():
    h = Harness(captcha_valid=False)
    h.auth.add_user(email="a@b.io")
    with pytest.raises(CaptchaInvalidError):
        h.login_password().execute(_password_input())


def test_email_send_then_check_succeeds_once():
    h = Harness()
    user = h.auth.add_user(email="a@b.io")

    sent = h.send_login_code().execute(
        SendLoginCodeInput(email="a@b.io", password="secret-pass", captcha_token="tok", fingerprint=FINGERPRINT)
    )
    assert sent.tokens is not None
    assert sent.tokens.user_id == user.id
    assert h.mailer.sent[-1][:2] == ("a@b.io", "login_code")
    assert h.captcha.calls[-1] == ("tok", "email_auth")

    code = h.mailer.last_code()
    check = CheckLoginCodeInput(email="a@b.io", code=code, fingerprint=FINGERPRINT)
    output = h.check_login_code().execute(check)
    assert output.user_id == user.id

    with pytest.raises(CodeNotValidError):
        h.check_login_code().execute(check)


def test_email_send_from_new_device_mints_pair_eagerly():
    h = Harness()
    h.auth.add_user(email="a@b.io")
    fresh = DeviceFingerprint(ip="9.9.9.9", user_agent="Other/2")

    sent = h.send_login_code().execute(
        SendLoginCodeInput(email="a@b.io", password="secret-pass", captcha_token="tok", fingerprint=fresh)
    )

    assert sent.tokens is not None
    device = h.devices.devices[sent.tokens.device_id]
    assert (device.ip, device.user_agent) == ("9.9.9.9", "Other/2")
    assert len(h.mailer.sent) == 1


def test_email_resend_supersedes_previous_code():
    h = Harness()
    h.auth.add_user(email="a@b.io")
    command = SendLoginCodeInput(
        email="a@b.io", password="secret-pass", captcha_token="tok", fingerprint=FINGERPRINT
    )

    h.send_login_code().execute(command)
    first = h.mailer.last_code()
    h.send_login_code().execute(command)
    second = h.mailer.last_code()

    if first != second:
        with pytest.raises(CodeNotValidError):
            h.check_login_code().execute(
                CheckLoginCodeInput(email="a@b.io", code=first, fingerprint=FINGERPRINT)
            )
    h.check_login_code().execute(CheckLoginCodeInput(email="a@b.io", code=second, fingerprint=FINGERPRINT))


def test_refresh_rotates_pair_and_is_revoked_after_logout():
    h = Harness()
    user = h.auth.add_user(email="a@b.io")
    issued = h.login_password().execute(_password_input())

    refreshed = h.refresh().execute(RefreshSessionInput(refresh_token=issued.refresh_token, fingerprint=FINGERPRINT))
    assert refreshed.device_id == issued.device_id

    LogoutSessionUseCase(revocation_port=h.devices).execute(LogoutInput(user_id=user.id))

    with pytest.raises(TokenRevokedError):
        h.refresh().execute(RefreshSessionInput(refresh_token=refreshed.refresh_token, fingerprint=FINGERPRINT))


def test_refresh_from_other_fingerprint_is_revoked():
    h = Harness()
    h.auth.add_user(email="a@b.io")
    issued = h.login_password().execute(_password_input())

    other = DeviceFingerprint(ip="5.6.7.8", user_agent="UA/1")
    with pytest.raises(TokenRevokedError):
        h.refresh().execute(RefreshSessionInput(refresh_token=issued.refresh_token, fingerprint=other))


def test_refresh_after_device_deleted_is_revoked():
    h = Harness()
    h.auth.add_user(email="a@b.io")
    issued = h.login_password().execute(_password_input())
    h.devices.delete_device(device_id=issued.device_id)

    with pytest.raises(TokenRevokedError):
        h.refresh().execute(RefreshSessionInput(refresh_token=issued.refresh_token, fingerprint=FINGERPRINT))


def test_recovery_replaces_password_and_ends_sessions():
    h = Harness()
    user = h.auth.add_user(email="a@b.io")
    issued = h.login_password().execute(_password_input())

    SendRecoveryCodeUseCase(
        auth_port=h.auth,
        captcha_port=h.captcha,
        mail_port=h.mailer,
        code_manager=h.codes,
    ).execute(SendRecoveryCodeInput(email="a@b.io", captcha_token="tok"))
    assert h.captcha.calls[-1] == ("tok", "forgot_pass")
    assert h.mailer.sent[-1][1] == "recovery_code"

    CheckRecoveryCodeUseCase(
        auth_port=h.auth,
        revocation_port=h.devices,
        password_hasher=h.hasher,
        code_manager=h.codes,
    ).execute(CheckRecoveryCodeInput(email="a@b.io", code=h.mailer.last_code(), new_password="brand-new-pass"))

    assert h.devices.get_revocation_marker(user_id=user.id) == 1
    with pytest.raises(TokenRevokedError):
        h.refresh().execute(RefreshSessionInput(refresh_token=issued.refresh_token, fingerprint=FINGERPRINT))
    with pytest.raises(InvalidCredentialsError):
        h.login_password().execute(_password_input())
    h.login_password().execute(_password_input(password="brand-new-pass"))


def test_recovery_check_with_wrong_code_is_code_not_valid():
    h = Harness()
    h.auth.add_user(email="a@b.io")
    h.codes.generate(email="a@b.io", purpose="recover")

    with pytest.raises(CodeNotValidError):
        CheckRecoveryCodeUseCase(
            auth_port=h.auth,
            revocation_port=h.devices,
            password_hasher=h.hasher,
            code_manager=h.codes,
        ).execute(CheckRecoveryCodeInput(email="a@b.io", code="not-a-code", new_password="brand-new-pass"))


def test_recovery_send_unknown_user_is_not_found():
    h = Harness()
    with pytest.raises(NotFoundError):
        SendRecoveryCodeUseCase(
            auth_port=h.auth,
            captcha_port=h.captcha,
            mail_port=h.mailer,
            code_manager=h.codes,
        ).execute(SendRecoveryCodeInput(email="ghost@b.io", captcha_token="tok"))
    assert h.mailer.sent == []


def test_register_user_assigns_default_role_and_rejects_duplicates():
    h = Harness()
    use_case = RegisterUserUseCase(auth_port=h.auth, password_hasher=h.hasher)

    output = use_case.execute(RegisterUserInput(name="Alice", email="Alice@B.io", password="secret-pass"))

    assert output.user.email == "alice@b.io"
    assert output.user.roles == ("user",)
    with pytest.raises(AlreadyExistsError):
        use_case.execute(RegisterUserInput(name="Alice", email="alice@b.io", password="secret-pass"))
