from __future__ import annotations

import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from fleetvmrs.core.config import settings
from fleetvmrs.db.models import Base, Part
from fleetvmrs.services.vmrs_ai import clear_cache


class FakeGeminiClient:
    """Stands in for GeminiClient; records prompts and replays a canned payload."""

    def __init__(self, payload: dict | str | None = None, error: Exception | None = None) -> None:
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        self.payload = payload or ""
        self.error = error
        self.calls: list[str] = []
        self.schemas: list[dict | None] = []

    def generate_json(
        self,
        prompt: str,
        *,
        temperature: float,
        max_output_tokens: int,
        response_schema: dict | None = None,
    ) -> tuple[str, dict]:
        self.calls.append(prompt)
        self.schemas.append(response_schema)
        if self.error is not None:
            raise self.error
        return self.payload, {"name": "fake-gemini", "temperature": temperature}


@pytest.fixture()
def db_session() -> Session:
    engine = create_engine("sqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def vmrs_ai_settings(monkeypatch):
    monkeypatch.setattr(settings, "vmrs_ai_enabled", True)
    monkeypatch.setattr(settings, "vmrs_ai_cache_enabled", False)
    monkeypatch.setattr(settings, "gemini_api_key", None)
    clear_cache()
    yield
    clear_cache()


def create_part(
    session: Session,
    name: str,
    *,
    org_id: int = 1,
    part_number: str = "PN-1",
    description: str | None = None,
    system_code: str | None = None,
) -> Part:
    part = Part(
        org_id=org_id,
        part_number=part_number,
        name=name,
        description=description,
        vmrs_system_code=system_code,
    )
    session.add(part)
    session.commit()
    session.refresh(part)
    return part
