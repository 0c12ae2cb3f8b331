import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from redeemable.db import Base

import redeemable_models  # noqa: F401  registers the test tables on Base.metadata


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class FakeCodeSequence:
    """Stands in for generate_code, handing out codes from a fixed list."""

    def __init__(self, codes):
        self.codes = list(codes)
        self.calls = 0

    def __call__(self, code_length=6):
        code = self.codes[self.calls]
        self.calls += 1
        return code


@pytest.fixture
def fake_codes(monkeypatch):
    from redeemable.services import code_generator

    def install(*codes):
        sequence = FakeCodeSequence(codes)
        monkeypatch.setattr(code_generator, "generate_code", sequence)
        return sequence

    return install
