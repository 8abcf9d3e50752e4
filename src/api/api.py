import logging
from contextlib import asynccontextmanager
from time import perf_counter
from typing import Annotated, AsyncGenerator, Awaitable, Callable

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import sessionmaker

from api.dependencies import get_user_service
from config import config
from db.db import create_db_engine
from db.models import Base
from domain.users import CreateUserRequest, User, UserAlreadyExistsError, UserNotFoundError
from services.user_service import UserService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    engine = create_db_engine(config().database_url)
    Base.metadata.create_all(engine)
    fastapi_app.state.sessionmaker = sessionmaker(engine)
    yield
    engine.dispose()


app = FastAPI(lifespan=lifespan)


@app.middleware("http")
async def log_process_time(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    start_time = perf_counter()
    response = await call_next(request)
    process_time = perf_counter() - start_time
    logger.info("Request time: %s %s: %.4fs", request.method, request.url, process_time)
    return response


@app.exception_handler(UserNotFoundError)
async def handle_user_not_found(request: Request, exc: UserNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(UserAlreadyExistsError)
async def handle_user_exists(request: Request, exc: UserAlreadyExistsError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return "Hello world!"


@app.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(body: CreateUserRequest, us: Annotated[UserService, Depends(get_user_service)]) -> User:
    return us.create_user(body)


@app.get("/users")
def list_users(us: Annotated[UserService, Depends(get_user_service)]) -> list[User]:
    return us.list_users()


@app.get("/users/{user_id}")
def get_user(user_id: int, us: Annotated[UserService, Depends(get_user_service)]) -> User:
    return us.get_user(user_id)


@app.get("/users/username/{username}")
def get_user_by_username(username: str, us: Annotated[UserService, Depends(get_user_service)]) -> User:
    return us.get_user_by_username(username)
