from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from sso.application.ports.auth_port import AuthPort
from sso.domain.entities.challenge import WebAuthnCredential
from sso.domain.exceptions import AlreadyExistsError, NotFoundError
from sso.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_auth_identity,
    map_row_to_user,
    map_row_to_webauthn_credential,
    map_rows_to_roles,
)


_USER_COLUMNS = "id, name, email, avatar_url, created_at, updated_at"
_IDENTITY_COLUMNS = (
    "id, user_id, provider, provider_subject, password_hash, "
    "access_token, refresh_token, id_token, expires_at, created_at"
)


class SqlAccountsRepository(AuthPort):
    def __init__(self, engine, *, connection=None):
        self._engine = engine
        self._connection = connection

    @contextmanager
    def _reading(self):
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.connect() as conn:
            yield conn

    @contextmanager
    def _writing(self):
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.begin() as conn:
            yield conn

    def execute_in_transaction(self, fn):
        if self._connection is not None:
            return fn(self)
        with self._engine.begin() as conn:
            return fn(SqlAccountsRepository(self._engine, connection=conn))

    def _load_roles(self, conn, user_id: str):
        sql = """
            SELECT
                r.id AS role_id,
                r.name AS role_name,
                p.id AS permission_id,
                p.name AS permission_name
            FROM public.user_roles ur
            JOIN public.roles r
              ON r.id = ur.role_id
            LEFT JOIN public.role_permissions rp
              ON rp.role_id = r.id
            LEFT JOIN public.permissions p
              ON p.id = rp.permission_id
            WHERE ur.user_id = :user_id
            ORDER BY r.id, rp.position, p.id
        """
        rows = conn.execute(text(sql), {"user_id": user_id}).mappings().all()
        return map_rows_to_roles(rows)

    def get_user_by_id(self, *, user_id: str):
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE id = CAST(:user_id AS uuid)
            LIMIT 1
        """
        with self._reading() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
            if row is None:
                return None
            return map_row_to_user(row, self._load_roles(conn, str(row["id"])))

    def get_user_by_email(self, *, email: str):
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE lower(email) = :email
            LIMIT 1
        """
        with self._reading() as conn:
            row = conn.execute(text(sql), {"email": email.lower()}).mappings().first()
            if row is None:
                return None
            return map_row_to_user(row, self._load_roles(conn, str(row["id"])))

    def create_user(
        self,
        *,
        user_id: str,
        name: str,
        email: str,
        avatar_url: str | None,
        created_at: datetime,
        updated_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.users (
                id, name, email, avatar_url, created_at, updated_at
            ) VALUES (
                :id, :name, :email, :avatar_url, :created_at, :updated_at
            )
            RETURNING {_USER_COLUMNS}
        """
        params = {
            "id": user_id,
            "name": name,
            "email": email.lower(),
            "avatar_url": avatar_url,
            "created_at": created_at,
            "updated_at": updated_at,
        }
        try:
            with self._writing() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except IntegrityError as exc:
            raise AlreadyExistsError(cause=exc) from exc
        return map_row_to_user(row)

    def assign_role(self, *, user_id: str, role_name: str) -> None:
        sql = """
            INSERT INTO public.user_roles (user_id, role_id)
            SELECT :user_id, r.id
            FROM public.roles r
            WHERE r.name = :role_name
            ON CONFLICT DO NOTHING
            RETURNING role_id
        """
        with self._writing() as conn:
            row = conn.execute(text(sql), {"user_id": user_id, "role_name": role_name}).first()
            if row is None:
                exists = conn.execute(
                    text("SELECT 1 FROM public.roles WHERE name = :role_name"),
                    {"role_name": role_name},
                ).first()
                if exists is None:
                    raise NotFoundError(f"role {role_name} not found")

    def create_identity(
        self,
        *,
        identity_id: str,
        user_id: str,
        provider: str,
        provider_subject: str | None,
        password_hash: str | None,
        created_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.auth_identities (
                id, user_id, provider, provider_subject, password_hash, created_at
            ) VALUES (
                :id, :user_id, :provider, :provider_subject, :password_hash, :created_at
            )
            RETURNING {_IDENTITY_COLUMNS}
        """
        params = {
            "id": identity_id,
            "user_id": user_id,
            "provider": provider,
            "provider_subject": provider_subject,
            "password_hash": password_hash,
            "created_at": created_at,
        }
        try:
            with self._writing() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except IntegrityError as exc:
            raise AlreadyExistsError(cause=exc) from exc
        return map_row_to_auth_identity(row)

    def get_identity_for_user_provider(self, *, user_id: str, provider: str):
        sql = f"""
            SELECT {_IDENTITY_COLUMNS}
            FROM public.auth_identities
            WHERE user_id = CAST(:user_id AS uuid)
              AND provider = :provider
            LIMIT 1
        """
        with self._reading() as conn:
            row = conn.execute(text(sql), {"user_id": user_id, "provider": provider}).mappings().first()
        if row is None:
            return None
        return map_row_to_auth_identity(row)

    def get_identity_by_provider_subject(self, *, provider: str, provider_subject: str):
        sql = f"""
            SELECT {_IDENTITY_COLUMNS}
            FROM public.auth_identities
            WHERE provider = :provider
              AND provider_subject = :provider_subject
            LIMIT 1
        """
        with self._reading() as conn:
            row = conn.execute(
                text(sql),
                {
                    "provider": provider,
                    "provider_subject": provider_subject,
                },
            ).mappings().first()
        if row is None:
            return None
        return map_row_to_auth_identity(row)

    def update_identity_password_hash(self, *, identity_id: str, password_hash: str) -> None:
        sql = """
            UPDATE public.auth_identities
            SET password_hash = :password_hash
            WHERE id = :identity_id
        """
        with self._writing() as conn:
            conn.execute(text(sql), {"identity_id": identity_id, "password_hash": password_hash})

    def update_identity_tokens(
        self,
        *,
        identity_id: str,
        access_token: str | None,
        refresh_token: str | None,
        id_token: str | None,
        expires_at: datetime | None,
    ) -> None:
        sql = """
            UPDATE public.auth_identities
            SET access_token = :access_token,
                refresh_token = COALESCE(:refresh_token, refresh_token),
                id_token = :id_token,
                expires_at = :expires_at
            WHERE id = :identity_id
        """
        with self._writing() as conn:
            conn.execute(
                text(sql),
                {
                    "identity_id": identity_id,
                    "access_token": access_token,
                    "refresh_token": refresh_token,
                    "id_token": id_token,
                    "expires_at": expires_at,
                },
            )

    def get_local_identity_by_email(self, *, email: str):
        sql = """
            SELECT
                u.id AS user_id,
                u.name,
                u.email,
                u.avatar_url,
                u.created_at AS user_created_at,
                u.updated_at AS user_updated_at,
                i.id AS identity_id,
                i.provider,
                i.provider_subject,
                i.password_hash,
                i.created_at AS identity_created_at
            FROM public.users u
            JOIN public.auth_identities i
              ON i.user_id = u.id
            WHERE lower(u.email) = :email
              AND i.provider = 'local'
            LIMIT 1
        """
        with self._reading() as conn:
            row = conn.execute(text(sql), {"email": email.lower()}).mappings().first()
            if row is None:
                return None
            roles = self._load_roles(conn, str(row["user_id"]))

        user = map_row_to_user(
            {
                "id": row["user_id"],
                "name": row["name"],
                "email": row["email"],
                "avatar_url": row["avatar_url"],
                "created_at": row["user_created_at"],
                "updated_at": row["user_updated_at"],
            },
            roles,
        )
        identity = map_row_to_auth_identity(
            {
                "id": row["identity_id"],
                "user_id": row["user_id"],
                "provider": row["provider"],
                "provider_subject": row["provider_subject"],
                "password_hash": row["password_hash"],
                "created_at": row["identity_created_at"],
            }
        )
        return user, identity

    def list_webauthn_credentials(self, *, user_id: str):
        sql = """
            SELECT id, user_id, public_key, sign_count, transports, created_at
            FROM public.webauthn_credentials
            WHERE user_id = CAST(:user_id AS uuid)
            ORDER BY created_at
        """
        with self._reading() as conn:
            rows = conn.execute(text(sql), {"user_id": user_id}).mappings().all()
        return [map_row_to_webauthn_credential(row) for row in rows]

    def create_webauthn_credential(self, *, credential: WebAuthnCredential):
        sql = """
            INSERT INTO public.webauthn_credentials (
                id, user_id, public_key, sign_count, transports, created_at
            ) VALUES (
                :id, :user_id, :public_key, :sign_count, :transports, :created_at
            )
            RETURNING id, user_id, public_key, sign_count, transports, created_at
        """
        params = {
            "id": credential.id,
            "user_id": credential.user_id,
            "public_key": credential.public_key,
            "sign_count": credential.sign_count,
            "transports": ",".join(credential.transports),
            "created_at": credential.created_at,
        }
        try:
            with self._writing() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except IntegrityError as exc:
            raise AlreadyExistsError(cause=exc) from exc
        return map_row_to_webauthn_credential(row)

    def update_webauthn_sign_count(self, *, credential_id: str, sign_count: int) -> None:
        sql = """
            UPDATE public.webauthn_credentials
            SET sign_count = :sign_count
            WHERE id = :credential_id
        """
        with self._writing() as conn:
            conn.execute(text(sql), {"credential_id": credential_id, "sign_count": sign_count})
