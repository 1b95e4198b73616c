# backend/onboarding/deps.py
from __future__ import annotations

from functools import lru_cache

from .config import settings
from .db import SessionLocal
from .integrations.blob_store import LocalBlobStore
from .integrations.document_generator import LeaseDocumentGenerator
from .integrations.notifier import PipelineNotifier
from .services.screening_service import ScreeningAutosave


@lru_cache(maxsize=1)
def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore()


@lru_cache(maxsize=1)
def get_document_generator() -> LeaseDocumentGenerator:
    return LeaseDocumentGenerator(get_blob_store())


@lru_cache(maxsize=1)
def get_notifier() -> PipelineNotifier:
    return PipelineNotifier()


@lru_cache(maxsize=1)
def get_autosave() -> ScreeningAutosave:
    return ScreeningAutosave(SessionLocal, delay_seconds=settings.autosave_debounce_seconds)
