from sqlalchemy.orm import Session

from .database import Base, engine
from .routes import routers
from .user_service import seed_default_admin


def init_classroom_module() -> None:
    Base.metadata.create_all(bind=engine)
    db = Session(bind=engine)
    try:
        seed_default_admin(db)
    finally:
        db.close()


__all__ = ["routers", "init_classroom_module"]
