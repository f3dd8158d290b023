import os
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg2://postgres:postgres@db:5432/connect")

engine = create_engine(DATABASE_URL, future=True, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


def supports_row_locks(db) -> bool:
    return db.get_bind().dialect.name == "postgresql"


def for_update(db) -> str:
    return " FOR UPDATE" if supports_row_locks(db) else ""
