from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.core.config import settings
from app.core.errors import StorageError

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
	pass


def engine_options(database_url: str) -> dict:
	if database_url.startswith("sqlite"):
		return {"connect_args": {"check_same_thread": False}}
	return {
		"pool_pre_ping": True,
		"pool_recycle": 3600,
		"pool_timeout": 10,
		"connect_args": {"connect_timeout": 10},
	}


def enable_sqlite_foreign_keys(target: Engine) -> None:
	"""SQLite ignores FOREIGN KEY clauses unless the pragma is set per connection."""
	if target.dialect.name != "sqlite":
		return

	@event.listens_for(target, "connect")
	def _set_pragma(dbapi_connection, connection_record):
		cursor = dbapi_connection.cursor()
		cursor.execute("PRAGMA foreign_keys=ON")
		cursor.close()


# Create engine with better error handling
try:
	engine = create_engine(settings.database_url, **engine_options(settings.database_url))
	enable_sqlite_foreign_keys(engine)
	SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
	logger.info("Database engine created successfully")
except Exception as e:
	logger.error(f"Failed to create database engine: {e}")
	engine = None
	SessionLocal = None


def get_db():
	if SessionLocal is None:
		raise StorageError("Database not available. Please check your database connection.")

	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


def commit(db: Session, action: str) -> None:
	"""Commit the current unit of work, rolling back and raising StorageError on failure."""
	try:
		db.commit()
	except SQLAlchemyError:
		db.rollback()
		logger.exception(f"Failed to {action}")
		raise StorageError(f"Failed to {action}")
