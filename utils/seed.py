from sqlalchemy import inspect

from models import db
from models.user import Role

DEFAULT_ROLES = ["PLAYER", "FACILITY_OWNER", "ADMIN"]

def seed_roles():
    # fresh database: nothing to seed until `flask db upgrade` has run
    if not inspect(db.engine).has_table(Role.__tablename__):
        return
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()
