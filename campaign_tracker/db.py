# campaign_tracker/db.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from campaign_tracker.core.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
  cursor = dbapi_connection.cursor()
  cursor.execute("PRAGMA foreign_keys=ON")
  cursor.close()


def make_engine(url: str, **kwargs) -> Engine:
  if url.startswith("sqlite"):
    kwargs.setdefault("connect_args", {"check_same_thread": False})
  else:
    kwargs.setdefault("pool_size", 5)
    kwargs.setdefault("max_overflow", 10)

  engine = create_engine(url, pool_pre_ping=True, **kwargs)

  # SQLite ignores FOREIGN KEY clauses unless asked per connection
  if engine.dialect.name == "sqlite":
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
  return engine


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
  db = SessionLocal()
  try:
    yield db
  finally:
    db.close()
