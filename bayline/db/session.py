from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from bayline.core.config import settings

# SQLite is only used for local runs and tests; it needs the same-thread check off
connect_args = {} if settings.is_postgres else {"check_same_thread": False}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
