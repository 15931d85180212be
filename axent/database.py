from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from axent.config import settings
from axent.models import Base


def create_session_factory(database_url: str):
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine, SessionLocal = create_session_factory(settings.DATABASE_URL)


# Initialize database
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


if __name__ == '__main__':
    init_db()
