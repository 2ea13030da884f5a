from __future__ import annotations

from typing import Tuple


DEMO_ORGANIZATIONS = (
    ("org-prefeitura-sp", "Prefeitura Municipal de Sao Paulo"),
    ("org-governo-mg", "Governo do Estado de Minas Gerais"),
    ("org-tribunal-rs", "Tribunal de Justica do Rio Grande do Sul"),
)

DEMO_USERS = (
    ("user-ana", "Ana Souza", "ana@demo.com"),
    ("user-bruno", "Bruno Lima", "bruno@demo.com"),
    ("user-carla", "Carla Mendes", "carla@demo.com"),
)


def seed_lookup_tables(db) -> Tuple[int, int]:
    """Insert demo organizations and users; existing ids are left untouched."""
    organizations = 0
    for organization_id, name in DEMO_ORGANIZATIONS:
        cursor = db.execute(
            "INSERT INTO organizations (id, name) VALUES (?, ?) ON CONFLICT DO NOTHING",
            (organization_id, name),
        )
        organizations += max(0, int(cursor.rowcount or 0))

    users = 0
    for user_id, name, email in DEMO_USERS:
        cursor = db.execute(
            "INSERT INTO users (id, name, email) VALUES (?, ?, ?) ON CONFLICT DO NOTHING",
            (user_id, name, email),
        )
        users += max(0, int(cursor.rowcount or 0))

    db.commit()
    return organizations, users
