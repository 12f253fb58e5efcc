from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from app.config import DATABASE_URL, LEDGER_DATABASE_URL, DB_POOL_SETTINGS

# Two independent stores, each with its own pool. No shared schema or foreign
# keys: rows are correlated by the affiliate code string only.

def _make_engine(url: str) -> Engine:
	if url.startswith("sqlite"):
		return create_engine(url, connect_args={"check_same_thread": False})
	return create_engine(
		url,
		pool_size=DB_POOL_SETTINGS["pool_size"],
		pool_recycle=DB_POOL_SETTINGS["pool_recycle"],
		pool_pre_ping=True,
		connect_args={"connect_timeout": DB_POOL_SETTINGS["connect_timeout"]},
	)

engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ledger_engine = _make_engine(LEDGER_DATABASE_URL)
LedgerSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=ledger_engine)

class Base(DeclarativeBase):
	pass

class LedgerBase(DeclarativeBase):
	pass
