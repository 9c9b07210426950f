from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from mktdash.config import DATABASE_URL

# Default is a lightweight local sqlite DB; override with DATABASE_URL.
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

class Base(DeclarativeBase):
	pass
