from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import text

from sso.application.ports.device_port import DevicePort
from sso.application.ports.revocation_port import RevocationPort
from sso.domain.entities.device import DeviceFingerprint
from sso.domain.services.device_fingerprint import DeviceProfile
from sso.infrastructure.db.mappers.sessions_mapper import map_row_to_device


_DEVICE_COLUMNS = "id, user_id, name, device_type, os, browser, ip, user_agent, last_active, created_at"


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except (TypeError, ValueError):
        return False
    return True


class SqlDevicesRepository(DevicePort, RevocationPort):
    def __init__(self, engine):
        self._engine = engine

    def upsert_device(
        self,
        *,
        user_id: str,
        fingerprint: DeviceFingerprint,
        profile: DeviceProfile,
        now: datetime,
    ):
        sql = f"""
            INSERT INTO public.devices (
                id, user_id, name, device_type, os, browser, ip, user_agent, last_active, created_at
            ) VALUES (
                :id, :user_id, :name, :device_type, :os, :browser, :ip, :user_agent, :now, :now
            )
            ON CONFLICT (user_id, ip, user_agent) DO UPDATE
            SET last_active = EXCLUDED.last_active
            RETURNING {_DEVICE_COLUMNS}
        """
        params = {
            "id": str(uuid4()),
            "user_id": user_id,
            "name": profile.name,
            "device_type": profile.device_type,
            "os": profile.os,
            "browser": profile.browser,
            "ip": fingerprint.ip,
            "user_agent": fingerprint.user_agent,
            "now": now,
        }
        with self._engine.begin() as conn:
            row = conn.execute(text(sql), params).mappings().one()
        return map_row_to_device(row)

    def get_device_by_id(self, *, device_id: str):
        if not _is_uuid(device_id):
            return None
        sql = f"""
            SELECT {_DEVICE_COLUMNS}
            FROM public.devices
            WHERE id = CAST(:device_id AS uuid)
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"device_id": device_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_device(row)

    def list_devices(self, *, user_id: str):
        sql = f"""
            SELECT {_DEVICE_COLUMNS}
            FROM public.devices
            WHERE user_id = CAST(:user_id AS uuid)
            ORDER BY last_active DESC
        """
        with self._engine.connect() as conn:
            rows = conn.execute(text(sql), {"user_id": user_id}).mappings().all()
        return [map_row_to_device(row) for row in rows]

    def update_device_name(self, *, device_id: str, name: str):
        if not _is_uuid(device_id):
            return None
        sql = f"""
            UPDATE public.devices
            SET name = :name
            WHERE id = CAST(:device_id AS uuid)
            RETURNING {_DEVICE_COLUMNS}
        """
        with self._engine.begin() as conn:
            row = conn.execute(text(sql), {"device_id": device_id, "name": name}).mappings().first()
        if row is None:
            return None
        return map_row_to_device(row)

    def delete_device(self, *, device_id: str) -> bool:
        if not _is_uuid(device_id):
            return False
        sql = """
            DELETE FROM public.devices
            WHERE id = CAST(:device_id AS uuid)
        """
        with self._engine.begin() as conn:
            result = conn.execute(text(sql), {"device_id": device_id})
        return result.rowcount > 0

    def get_revocation_marker(self, *, user_id: str) -> int:
        sql = """
            SELECT marker
            FROM public.refresh_revocations
            WHERE user_id = CAST(:user_id AS uuid)
        """
        with self._engine.connect() as conn:
            value = conn.execute(text(sql), {"user_id": user_id}).scalar()
        return int(value or 0)

    def advance_revocation_marker(self, *, user_id: str) -> int:
        sql = """
            INSERT INTO public.refresh_revocations (user_id, marker, updated_at)
            VALUES (CAST(:user_id AS uuid), 1, now())
            ON CONFLICT (user_id) DO UPDATE
            SET marker = public.refresh_revocations.marker + 1,
                updated_at = now()
            RETURNING marker
        """
        with self._engine.begin() as conn:
            return int(conn.execute(text(sql), {"user_id": user_id}).scalar_one())
