"""Test configuration."""
import os
from collections.abc import AsyncIterator, Callable, Iterator
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# --- Default environment, read once when freelancehub.config is imported
os.environ.setdefault("FH_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEV_API_KEY", "test-dev-key")
os.environ.setdefault("PROMETHEUS_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret")

from freelancehub.main import app  # noqa: E402
from freelancehub.db import get_db  # noqa: E402
from freelancehub.models import ApiKey, Base, Bid, Project, User, UserRole  # noqa: E402
from freelancehub.schemas.bid import BidCreate  # noqa: E402
from freelancehub.schemas.project import ProjectCreate  # noqa: E402
from freelancehub.security import Principal  # noqa: E402
from freelancehub.services import bids as bid_service  # noqa: E402
from freelancehub.services import projects as project_service  # noqa: E402
from freelancehub.utils.apikey import hash_key  # noqa: E402


@pytest.fixture
def engine() -> Iterator[Engine]:
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        test_engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Iterator[Session]:
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def override_db_dependency(db_session: Session) -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _factory(role: UserRole, *, name: str | None = None, is_active: bool = True) -> User:
        username = name or f"{role.value}-{uuid4().hex[:8]}"
        user = User(username=username, email=f"{username}@example.com", role=role, is_active=is_active)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _factory


@pytest.fixture
def make_headers(db_session: Session) -> Callable[[User], dict[str, str]]:
    """Issue a fresh API key for ``user`` and return the bearer header."""

    def _factory(user: User) -> dict[str, str]:
        token = f"fh_test.{uuid4().hex}"
        api_key = ApiKey(
            name=f"key-{uuid4().hex}",
            prefix="fh_test",
            key_hash=hash_key(token),
            user_id=user.id,
            is_active=True,
        )
        db_session.add(api_key)
        db_session.commit()
        return {"Authorization": f"Bearer {token}"}

    return _factory


@pytest.fixture
def client_user(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.CLIENT, name="client-alice")


@pytest.fixture
def other_client(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.CLIENT, name="client-carol")


@pytest.fixture
def freelancer_user(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.FREELANCER, name="freelancer-bob")


@pytest.fixture
def other_freelancer(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.FREELANCER, name="freelancer-dave")


@pytest.fixture
def admin_user(make_user: Callable[..., User]) -> User:
    return make_user(UserRole.ADMIN, name="admin-eve")


@pytest.fixture
def principal_of() -> Callable[[User], Principal]:
    return Principal.from_user


@pytest.fixture
def make_project(db_session: Session) -> Callable[..., Project]:
    def _factory(owner: User, *, budget: str = "1000.00", title: str = "Landing page") -> Project:
        payload = ProjectCreate(
            title=title,
            description="Build a marketing landing page.",
            budget=Decimal(budget),
            required_skills=["python", "fastapi"],
        )
        return project_service.create_project(db_session, Principal.from_user(owner), payload)

    return _factory


@pytest.fixture
def place_bid(db_session: Session) -> Callable[..., Bid]:
    def _factory(freelancer: User, project: Project, amount: str = "800.00") -> Bid:
        payload = BidCreate(amount=Decimal(amount), timeline="2 weeks", proposal="I can deliver this.")
        return bid_service.create_bid(db_session, Principal.from_user(freelancer), project.id, payload)

    return _factory


@pytest.fixture
def assigned_project(
    db_session: Session,
    client_user: User,
    freelancer_user: User,
    make_project: Callable[..., Project],
    place_bid: Callable[..., Bid],
) -> tuple[Project, Bid]:
    """An in-progress project whose bid from ``freelancer_user`` was accepted."""

    project = make_project(client_user)
    bid = place_bid(freelancer_user, project)
    bid_service.accept_bid(db_session, Principal.from_user(client_user), bid.id)
    db_session.refresh(project)
    db_session.refresh(bid)
    return project, bid
