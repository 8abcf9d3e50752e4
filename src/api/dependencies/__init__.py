from typing import Annotated, Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from db.repositories import UserRepository
from services.user_service import UserService


def get_session(request: Request) -> Generator[Session, None, None]:
    with request.app.state.sessionmaker() as session:
        yield session


def get_user_service(session: Annotated[Session, Depends(get_session)]) -> UserService:
    return UserService(UserRepository(session))
