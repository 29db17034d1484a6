from sqlmodel import SQLModel, create_engine, Session

from .config import get_settings


def make_engine(url: str):
    # FastAPI runs sync endpoints in a threadpool; SQLite must allow that.
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine(get_settings().database_url)


def init_db(bind=None):
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as session:
        yield session
