from prode.db.session import engine
from prode.db.base import Base

# registers the models before creating tables
import prode.models  # noqa: F401


def init_db():
    Base.metadata.create_all(bind=engine)
