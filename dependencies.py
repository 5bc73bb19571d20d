from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from db import SessionLocal
from lending import LendingCoordinator
from unit_of_work import UnitOfWork


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_coordinator(request: Request) -> LendingCoordinator:
    return request.app.state.coordinator


def get_uow(request: Request) -> UnitOfWork:
    return request.app.state.coordinator.uow
