"""
AchievR - Test Configuration and Fixtures
"""
import os
import tempfile
from datetime import date
from typing import AsyncGenerator, Optional
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment (before anything reads settings)
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['APP_URL'] = 'https://achievr.test'
os.environ['CERTIFICATE_STORAGE_PATH'] = tempfile.mkdtemp(prefix='achievr-certs-')

from app.main import app
from app.core.database import Base, get_db
from app.core.security import get_password_hash, create_access_token
from app.models import Activity, ActivityStatus, AchievementLevel, User, UserRole
from app.api.v1.dependencies import get_mailer, get_renderer, get_storage
from app.services.certificate_service import CertificateService
from app.services.certificate_storage import CertificateStorage
from app.services.delivery_service import DeliveryService
from tests.mocks.fakes import FakeMailer, FakeRenderer

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


# ==================== Database / client ====================

@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory():
    """Independent sessions on the test database, for concurrency tests"""
    return TestSessionLocal


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def storage(tmp_path) -> CertificateStorage:
    return CertificateStorage(tmp_path / "certificates")


@pytest.fixture
def certificate_service(db_session, renderer, mailer, storage) -> CertificateService:
    return CertificateService(db_session, renderer, mailer, storage)


@pytest.fixture
def delivery_service(db_session, mailer, storage) -> DeliveryService:
    return DeliveryService(db_session, mailer, storage)


@pytest.fixture
async def client(
    db_session: AsyncSession,
    renderer: FakeRenderer,
    mailer: FakeMailer,
    storage: CertificateStorage,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and collaborator overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_renderer] = lambda: renderer
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== Users ====================

async def _create_user(db: AsyncSession, role: UserRole, **overrides) -> User:
    user = User(
        email=overrides.pop('email', fake.unique.email()),
        hashed_password=get_password_hash('testpassword123'),
        full_name=overrides.pop('full_name', fake.name()),
        role=role,
        is_active=True,
        **overrides,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def student_user(db_session: AsyncSession) -> User:
    """Create a student with profile fields printed on certificates"""
    return await _create_user(
        db_session,
        UserRole.STUDENT,
        roll_number=fake.bothify('21CS###'),
        department='Computer Science',
    )


@pytest.fixture
async def other_student(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.STUDENT)


@pytest.fixture
async def faculty_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.FACULTY)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, UserRole.ADMIN)


def _headers_for(user: User) -> dict:
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def student_headers(student_user: User) -> dict:
    return _headers_for(student_user)


@pytest.fixture
def other_student_headers(other_student: User) -> dict:
    return _headers_for(other_student)


@pytest.fixture
def faculty_headers(faculty_user: User) -> dict:
    return _headers_for(faculty_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


# ==================== Activities ====================

@pytest.fixture
def make_activity(db_session: AsyncSession):
    """Factory for activities owned by a given student"""
    async def _make(
        student: User,
        title: Optional[str] = None,
        status: ActivityStatus = ActivityStatus.APPROVED,
        event_date: Optional[date] = None,
    ) -> Activity:
        activity = Activity(
            student_id=student.id,
            title=title or fake.catch_phrase(),
            description=fake.sentence(),
            category='Technical',
            organizing_body=fake.company(),
            achievement_level=AchievementLevel.NATIONAL,
            event_date=event_date or fake.date_between(start_date='-1y', end_date='today'),
            status=status,
        )
        db_session.add(activity)
        await db_session.commit()
        await db_session.refresh(activity)
        return activity

    return _make


@pytest.fixture
async def approved_activity(make_activity, student_user: User) -> Activity:
    """The worked example: an approved hackathon win"""
    return await make_activity(
        student_user,
        title='Hackathon Winner',
        event_date=date(2025, 3, 1),
    )
