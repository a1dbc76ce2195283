from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from prode.core.config import settings

# SQLite needs this when the session is shared with scheduler threads
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


# FastAPI dependency: one session per request, closed at the end
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
