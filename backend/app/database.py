from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from .config import settings


def _connect_args(url: str) -> dict:
    # check_same_thread=False: FastAPI runs sync dependencies in a threadpool
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": settings.db_timeout}
    return {"connect_timeout": int(settings.db_timeout)}


engine = create_engine(
    settings.resolved_database_url,
    connect_args=_connect_args(settings.resolved_database_url),
)


@event.listens_for(engine, "connect")
def enable_sqlite_fk(dbapi_connection, _):
    if not settings.resolved_database_url.startswith("sqlite"):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
