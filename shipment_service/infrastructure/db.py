from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from shipment_service.core_settings import get_settings
from shipment_service.domain.models import Base

settings = get_settings()

def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}

engine = create_engine(settings.database_url, echo=False, future=True, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

def configure_engine(url: str, **kwargs) -> Engine:
    """Rebind the module engine and session factory (used by tests and scripts)."""
    global engine
    options = _engine_kwargs(url)
    options.update(kwargs)
    engine = create_engine(url, echo=False, future=True, **options)
    SessionLocal.configure(bind=engine)
    return engine

def get_engine() -> Engine:
    return engine

def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_models():
    Base.metadata.create_all(engine)
