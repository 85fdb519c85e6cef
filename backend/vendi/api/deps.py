"""FastAPI dependencies: DB session and state gateway."""
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from vendi.db.session import SessionLocal
from vendi.services.state_store import SqlStateGateway


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_gateway(db: Session = Depends(get_db)) -> SqlStateGateway:
    """State gateway bound to the request's session."""
    return SqlStateGateway(db)
