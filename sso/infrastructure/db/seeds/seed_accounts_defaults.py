from __future__ import annotations

from sqlalchemy import text


DEFAULT_ROLES = (
    ("admin", "Full access to every account and device."),
    ("user", "Regular account."),
)


def seed_accounts_defaults(engine) -> None:
    with engine.begin() as conn:
        for name, description in DEFAULT_ROLES:
            conn.execute(
                text(
                    """
                    INSERT INTO public.roles (name, description)
                    VALUES (:name, :description)
                    ON CONFLICT (name) DO UPDATE
                    SET description = EXCLUDED.description
                    """
                ),
                {"name": name, "description": description},
            )
