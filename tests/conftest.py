"""Shared fixtures."""

import pytest
from sqlmodel import Session

from code_advisor import store as store_module
from code_advisor.store import SuggestionStore, get_engine, init_db


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    """Point the app at a throwaway SQLite file."""
    url = f"sqlite:///{tmp_path / 'advisor.db'}"
    monkeypatch.setenv("CODE_ADVISOR_DATABASE_URL", url)
    store_module.reset_engine()
    yield url
    store_module.reset_engine()


@pytest.fixture
def session(database_url):
    engine = init_db(get_engine(database_url))
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(session):
    return SuggestionStore(session)


@pytest.fixture
def repository(store, tmp_path):
    return store.add_repository(name="shop", framework="frappe", root_path=str(tmp_path))
