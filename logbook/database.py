from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from logbook.config import get_settings


def make_engine(url):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(url, connect_args=connect_args)


engine = make_engine(get_settings().database_url)

SessionLocal = sessionmaker(bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
