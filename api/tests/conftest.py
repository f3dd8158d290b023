import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import app.main as m
from app import models, repo
from app.services import lifecycle
from app.services.rate_limit import limiter


@pytest.fixture
def session_factory(tmp_path, monkeypatch):
    """Point every module that opens sessions at a throwaway SQLite file."""
    engine = create_engine(f"sqlite:///{tmp_path / 'connect.db'}", future=True)
    models.Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    monkeypatch.setattr(lifecycle, "SessionLocal", factory)
    monkeypatch.setattr(repo, "SessionLocal", factory)
    monkeypatch.setattr(m, "SessionLocal", factory)
    limiter.reset()
    yield factory
    engine.dispose()


@pytest.fixture
def users(session_factory):
    def _make(name: str, **kwargs):
        return repo.create_user(f"{name}@example.com", display_name=name.title(), **kwargs)

    return {
        "alice": _make("alice"),
        "bilal": _make("bilal"),
        "chen": _make("chen"),
    }


MUSLIM_ANSWERS = {
    "marriage_understanding": "A partnership built on faith and trust",
    "life_goals": "Raise a family and build a business",
    "partner_traits": "Kind, honest, patient",
    "hobbies_interests": "Hiking and reading",
    "religious_practice_importance": "Very important",
    "spiritual_growth": "Daily reflection",
    "sect_preference": "No preference",
}

NON_RELIGIOUS_ANSWERS = {
    "marriage_understanding": "Two friends choosing each other every day",
    "life_goals": "Travel and keep learning",
    "partner_traits": "Curious and warm",
    "hobbies_interests": "Cooking",
    "children_preference": "Open to it",
    "conflict_resolution": "Talk it through calmly",
}


@pytest.fixture
def muslim_answers():
    return dict(MUSLIM_ANSWERS)


@pytest.fixture
def non_religious_answers():
    return dict(NON_RELIGIOUS_ANSWERS)
