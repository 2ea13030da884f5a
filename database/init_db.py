import os
import sys

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from licitacoes import create_app
from licitacoes.db import get_db, init_db
from licitacoes.seed import seed_lookup_tables


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        init_db()
        if os.environ.get("SEED_DEMO_DATA", "1").strip().lower() in {"1", "true", "yes", "sim"}:
            organizations, users = seed_lookup_tables(get_db())
            print(f"Seed aplicado: {organizations} orgaos, {users} usuarios.")
    print("Database initialized.")
