from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from starlette.middleware.cors import CORSMiddleware

from .config import Settings, settings as default_settings
from .db import Database
from .metrics import CONTENT_TYPE_LATEST, REQUESTS_TOTAL, USERS_CREATED_TOTAL, generate_latest
from .models import User
from .schemas import HealthResponse, LoginRequest, TokenResponse, UserCreateRequest, UserItem
from .security import AuthContext, create_access_token, decode_token, get_bearer_token, hash_password, verify_password

logger = logging.getLogger("challenge.api")

api_router = APIRouter(prefix="/api")


def _database(request: Request) -> Database:
    return request.app.state.database


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _auth_user_from_header(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> AuthContext:
    token = get_bearer_token(authorization)
    return decode_token(_settings(request), token)


def _health(database: Database) -> HealthResponse:
    with database.session() as session:
        session.execute(text("SELECT 1"))
    return HealthResponse(
        status="ok",
        ts=datetime.now(timezone.utc).isoformat(),
        db_backend=database.backend,
    )


@api_router.get("/health", response_model=HealthResponse)
def api_healthcheck(database: Database = Depends(_database)) -> HealthResponse:
    return _health(database)


@api_router.post("/auth/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    request: Request,
    database: Database = Depends(_database),
) -> TokenResponse:
    with database.session() as session:
        user = session.execute(select(User).where(User.login == payload.login)).scalar_one_or_none()

    if user is None or not verify_password(payload.password, user.password):
        logger.info("Rejected login", extra={"event": "login_failed", "login": payload.login})
        raise HTTPException(status_code=401, detail="Invalid login or password")

    token = create_access_token(_settings(request), user.id, user.login)
    return TokenResponse(user_id=user.id, login=user.login, access_token=token)


@api_router.get("/users", response_model=list[UserItem])
def list_users(
    database: Database = Depends(_database),
    auth: AuthContext = Depends(_auth_user_from_header),
) -> list[UserItem]:
    _ = auth
    with database.session() as session:
        users = session.execute(select(User).order_by(User.id)).scalars().all()
    return [UserItem.model_validate(user) for user in users]


@api_router.get("/users/{user_id}", response_model=UserItem)
def get_user(
    user_id: int,
    database: Database = Depends(_database),
    auth: AuthContext = Depends(_auth_user_from_header),
) -> UserItem:
    _ = auth
    with database.session() as session:
        user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserItem.model_validate(user)


@api_router.post("/users", response_model=UserItem, status_code=201)
def create_user(
    payload: UserCreateRequest,
    database: Database = Depends(_database),
    auth: AuthContext = Depends(_auth_user_from_header),
) -> UserItem:
    try:
        with database.session() as session:
            user = User(
                firstname=payload.firstname,
                lastname=payload.lastname,
                login=payload.login,
                password=hash_password(payload.password),
            )
            session.add(user)
            session.flush()
            item = UserItem.model_validate(user)
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail="Login already taken") from exc

    USERS_CREATED_TOTAL.inc()
    logger.info(
        "User %r created by %r",
        item.login,
        auth.login,
        extra={"event": "user_created", "login": item.login},
    )
    return item


def create_app(database: Database, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API around an already bootstrapped database."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        database.dispose()

    app = FastAPI(title="Challenge API", version="1.0.0", lifespan=lifespan)
    app.state.database = database
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_counter_middleware(request: Request, call_next):
        response = await call_next(request)
        REQUESTS_TOTAL.labels(
            method=request.method,
            path=request.url.path,
            status=str(response.status_code),
        ).inc()
        return response

    @app.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return _health(database)

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(api_router)
    return app
