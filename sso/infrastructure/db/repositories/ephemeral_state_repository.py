from __future__ import annotations

import json

from sqlalchemy import text

from sso.application.ports.ceremony_port import CeremonyPort
from sso.application.ports.federation_state_port import FederationStatePort
from sso.application.ports.login_code_port import LoginCodePort
from sso.domain.entities.challenge import Ceremony, FederationState, LoginCode
from sso.infrastructure.db.mappers.sessions_mapper import (
    map_row_to_ceremony,
    map_row_to_federation_state,
    map_row_to_login_code,
)


class SqlEphemeralStateRepository(LoginCodePort, CeremonyPort, FederationStatePort):
    """Short-lived login codes, WebAuthn ceremonies and federation states."""

    def __init__(self, engine):
        self._engine = engine

    def save_code(self, *, code: LoginCode) -> None:
        sql = """
            INSERT INTO public.login_codes (
                email, purpose, code_hash, attempts, created_at, expires_at
            ) VALUES (
                :email, :purpose, :code_hash, 0, :created_at, :expires_at
            )
            ON CONFLICT (email, purpose) DO UPDATE
            SET code_hash = EXCLUDED.code_hash,
                attempts = 0,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at
        """
        params = {
            "email": code.email,
            "purpose": code.purpose,
            "code_hash": code.code_hash,
            "created_at": code.created_at,
            "expires_at": code.expires_at,
        }
        with self._engine.begin() as conn:
            conn.execute(text(sql), params)

    def load_code(self, *, email: str, purpose: str):
        sql = """
            SELECT email, purpose, code_hash, attempts, created_at, expires_at
            FROM public.login_codes
            WHERE email = :email
              AND purpose = :purpose
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"email": email, "purpose": purpose}).mappings().first()
        if row is None:
            return None
        return map_row_to_login_code(row)

    def increment_code_attempts(self, *, email: str, purpose: str) -> int:
        sql = """
            UPDATE public.login_codes
            SET attempts = attempts + 1
            WHERE email = :email
              AND purpose = :purpose
            RETURNING attempts
        """
        with self._engine.begin() as conn:
            value = conn.execute(text(sql), {"email": email, "purpose": purpose}).scalar()
        return int(value or 0)

    def delete_code(self, *, email: str, purpose: str, code_hash: str | None = None) -> bool:
        sql = """
            DELETE FROM public.login_codes
            WHERE email = :email
              AND purpose = :purpose
              AND (CAST(:code_hash AS text) IS NULL OR code_hash = :code_hash)
        """
        params = {"email": email, "purpose": purpose, "code_hash": code_hash}
        with self._engine.begin() as conn:
            result = conn.execute(text(sql), params)
        return result.rowcount > 0

    def save_ceremony(self, *, ceremony: Ceremony) -> None:
        sql = """
            INSERT INTO public.webauthn_ceremonies (purpose, key, state, expires_at)
            VALUES (:purpose, :key, CAST(:state AS jsonb), :expires_at)
            ON CONFLICT (purpose, key) DO UPDATE
            SET state = EXCLUDED.state,
                expires_at = EXCLUDED.expires_at
        """
        params = {
            "purpose": ceremony.purpose,
            "key": ceremony.key,
            "state": json.dumps(ceremony.state),
            "expires_at": ceremony.expires_at,
        }
        with self._engine.begin() as conn:
            conn.execute(text(sql), params)

    def load_ceremony(self, *, purpose: str, key: str):
        sql = """
            SELECT purpose, key, state, expires_at
            FROM public.webauthn_ceremonies
            WHERE purpose = :purpose
              AND key = :key
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"purpose": purpose, "key": key}).mappings().first()
        if row is None:
            return None
        return map_row_to_ceremony(row)

    def delete_ceremony(self, *, purpose: str, key: str) -> bool:
        sql = """
            DELETE FROM public.webauthn_ceremonies
            WHERE purpose = :purpose
              AND key = :key
        """
        with self._engine.begin() as conn:
            result = conn.execute(text(sql), {"purpose": purpose, "key": key})
        return result.rowcount > 0

    def save_federation_state(self, *, state: FederationState) -> None:
        sql = """
            INSERT INTO public.federation_states (state, flow, provider, nonce, expires_at)
            VALUES (:state, :flow, :provider, :nonce, :expires_at)
        """
        params = {
            "state": state.state,
            "flow": state.flow,
            "provider": state.provider,
            "nonce": state.nonce,
            "expires_at": state.expires_at,
        }
        with self._engine.begin() as conn:
            conn.execute(text(sql), params)

    def consume_federation_state(self, *, state: str):
        sql = """
            DELETE FROM public.federation_states
            WHERE state = :state
            RETURNING state, flow, provider, nonce, expires_at
        """
        with self._engine.begin() as conn:
            row = conn.execute(text(sql), {"state": state}).mappings().first()
        if row is None:
            return None
        return map_row_to_federation_state(row)

    def purge_expired(self) -> int:
        removed = 0
        with self._engine.begin() as conn:
            for table in ("login_codes", "webauthn_ceremonies", "federation_states"):
                result = conn.execute(text(f"DELETE FROM public.{table} WHERE expires_at <= now()"))
                removed += result.rowcount
        return removed
