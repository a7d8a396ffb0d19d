"""
Database session management
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from prodtrack.core.config import settings
from prodtrack.exceptions import DatabaseError
from prodtrack.logging_config import get_logger

logger = get_logger(__name__)

connection_string = settings.database_url

# Log connection info (without password)
if settings.DATABASE_URL:
    logger.info("Database connection: explicit DATABASE_URL")
else:
    logger.info(f"Database connection: {settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME} (PostgreSQL)")

engine = create_engine(
    connection_string,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,  # Verify connections before using
    pool_recycle=3600,  # Recycle connections after 1 hour
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency for getting database session

    Usage in FastAPI endpoints:
        @router.get("/production-orders")
        def list_orders(db: Session = Depends(get_db)):
            return db.query(ProductionOrder).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Commit everything flushed inside the block, or roll it all back.

    Services only flush; endpoints wrap each mutation in this block so a
    cascade, its audit row and its notifications land together or not at all.

        with unit_of_work(db):
            end_operation(db, catalog, op.id, actor=user)
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Transaction rolled back", extra={"error": str(e)}, exc_info=True)
        raise DatabaseError(details={"reason": e.__class__.__name__}) from e
    except Exception:
        db.rollback()
        raise
