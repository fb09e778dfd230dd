from __future__ import annotations

import pytest

from sso.application.use_cases.login_code_manager import LoginCodeManager, hash_code
from sso.domain.exceptions import CodeNotValidError
from tests.fakes import FakeEphemeralStateRepository


def _manager(state: FakeEphemeralStateRepository, *, max_attempts: int = 5) -> LoginCodeManager:
    return LoginCodeManager(
        code_port=state,
        ttl_seconds={"login": 300, "recover": 900},
        max_attempts=max_attempts,
    )


def test_generate_stores_digest_not_code():
    state = FakeEphemeralStateRepository()
    code = _manager(state).generate(email="A@B.io", purpose="login")

    stored = state.codes[("a@b.io", "login")]
    assert len(code) == 6
    assert code.isdigit()
    assert stored.code_hash == hash_code(code)
    assert stored.code_hash != code
    assert stored.attempts == 0


def test_check_consumes_code():
    state = FakeEphemeralStateRepository()
    manager = _manager(state)
    code = manager.generate(email="a@b.io", purpose="login")

    manager.check(email="a@b.io", purpose="login", code=code)

    assert ("a@b.io", "login") not in state.codes
    with pytest.raises(CodeNotValidError):
        manager.check(email="a@b.io", purpose="login", code=code)


def test_purposes_are_independent():
    state = FakeEphemeralStateRepository()
    manager = _manager(state)
    code = manager.generate(email="a@b.io", purpose="login")

    with pytest.raises(CodeNotValidError):
        manager.check(email="a@b.io", purpose="recover", code=code)
    manager.check(email="a@b.io", purpose="login", code=code)


def test_expired_code_is_removed():
    state = FakeEphemeralStateRepository()
    manager = _manager(state)
    code = manager.generate(email="a@b.io", purpose="login")
    state.expire_code(email="a@b.io", purpose="login")

    with pytest.raises(CodeNotValidError):
        manager.check(email="a@b.io", purpose="login", code=code)
    assert ("a@b.io", "login") not in state.codes


def test_too_many_attempts_removes_code():
    state = FakeEphemeralStateRepository()
    manager = _manager(state, max_attempts=2)
    code = manager.generate(email="a@b.io", purpose="login")
    wrong = "x" * 6

    for _ in range(2):
        with pytest.raises(CodeNotValidError):
            manager.check(email="a@b.io", purpose="login", code=wrong)
    with pytest.raises(CodeNotValidError):
        manager.check(email="a@b.io", purpose="login", code=code)
    assert ("a@b.io", "login") not in state.codes


def test_wrong_code_keeps_entry_until_limit():
    state = FakeEphemeralStateRepository()
    manager = _manager(state)
    code = manager.generate(email="a@b.io", purpose="login")

    with pytest.raises(CodeNotValidError):
        manager.check(email="a@b.io", purpose="login", code="000000" if code != "000000" else "111111")

    assert state.codes[("a@b.io", "login")].attempts == 1
    manager.check(email="a@b.io", purpose="login", code=code)
