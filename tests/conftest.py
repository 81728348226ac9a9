"""
Shared fixtures.

An in-memory SQLite database (aiosqlite, one shared connection) stands in
for PostgreSQL. Settings are read at import time, so the environment is
prepared before anything from ``lms_quiz`` is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DEBUG"] = "false"

from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lms_quiz.core.security import create_access_token, hash_password
from lms_quiz.db.database import Base, get_db
from lms_quiz.main import app
from lms_quiz.models import (
    Badge,
    Course,
    Enrollment,
    Lesson,
    QuestionType,
    Quiz,
    QuizOption,
    QuizQuestion,
    User,
    UserRole,
)
from lms_quiz.repositories.quiz_repo import QuizRepository

TEST_PASSWORD = "Password123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================
# Seed data
# ============================================================

@pytest.fixture
async def users(db):
    password_hash = hash_password(TEST_PASSWORD)

    def make(email, name, role):
        return User(email=email, password_hash=password_hash, full_name=name, role=role.value)

    seeded = SimpleNamespace(
        instructor=make("instructor@example.com", "Ivy Instructor", UserRole.INSTRUCTOR),
        other_instructor=make("other@example.com", "Otto Other", UserRole.INSTRUCTOR),
        student=make("student@example.com", "Sam Student", UserRole.STUDENT),
        second_student=make("second@example.com", "Alex Second", UserRole.STUDENT),
        outsider=make("outsider@example.com", "Olive Outsider", UserRole.STUDENT),
        admin=make("admin@example.com", "Ada Admin", UserRole.ADMIN),
    )
    db.add_all(vars(seeded).values())
    await db.commit()
    return seeded


@pytest.fixture
async def course(db, users):
    course = Course(instructor_id=users.instructor.id, title="Algebra I", is_published=True)
    db.add(course)
    await db.flush()
    db.add_all([
        Enrollment(user_id=users.student.id, course_id=course.id),
        Enrollment(user_id=users.second_student.id, course_id=course.id),
    ])
    await db.commit()
    return course


@pytest.fixture
async def lesson(db, course):
    lesson = Lesson(course_id=course.id, title="Linear equations", display_order=1)
    db.add(lesson)
    await db.commit()
    return lesson


@pytest.fixture
async def quiz_master_badge(db):
    badge = Badge(name="Quiz Master", description="Scored 90% or higher on a quiz")
    db.add(badge)
    await db.commit()
    return badge


def mc(points=1, correct=(0,), options=("A", "B", "C")):
    """Question spec for ``make_quiz``."""
    return (QuestionType.MULTIPLE_CHOICE, points, [(text, i in correct) for i, text in enumerate(options)])


def tf(answer=True, points=1):
    return (QuestionType.TRUE_FALSE, points, [("True", answer), ("False", not answer)])


def short(points=1):
    return (QuestionType.SHORT_ANSWER, points, [])


@pytest.fixture
def make_quiz(db, lesson):
    async def _make(questions=None, **overrides) -> Quiz:
        questions = questions if questions is not None else [mc(), mc()]
        fields = dict(
            lesson_id=lesson.id,
            title="Chapter quiz",
            time_limit=30,
            passing_score=60.0,
            max_attempts=1,
            is_active=True,
        )
        fields.update(overrides)
        quiz = Quiz(**fields)
        quiz.questions = [
            QuizQuestion(
                question_type=q_type.value,
                question_text=f"Question {i + 1}",
                points=points,
                display_order=i,
                options=[
                    QuizOption(option_text=text, is_correct=is_correct, display_order=j)
                    for j, (text, is_correct) in enumerate(options)
                ],
            )
            for i, (q_type, points, options) in enumerate(questions)
        ]
        db.add(quiz)
        await db.commit()
        return await QuizRepository(db).get_with_questions(quiz.id)

    return _make


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id), role=user.role)}"}


def correct_option_ids(question):
    return [o.id for o in question.options if o.is_correct]


def wrong_option_ids(question):
    return [next(o.id for o in question.options if not o.is_correct)]
