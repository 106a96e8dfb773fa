"""Shared FastAPI dependencies.

Collaborators are built once from settings and cached; tests swap them out
through ``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardano_adaptive.execution.boundary import ExecutionBoundary
from cardano_adaptive.execution.mock import MockExecutionBoundary
from cardano_adaptive.indexer.base import DAppIndexer, build_indexers
from cardano_adaptive.indexer.scheduler import IndexerScheduler
from cardano_adaptive.nl.intent_engine import IntentClassifier
from cardano_adaptive.registry.resolver import DAppResolver
from cardano_adaptive.registry.store import RegistryStore, SqlRegistryStore
from cardano_adaptive.settings import AdaptiveSettings, get_settings
from cardano_adaptive.storage.database import get_session, get_session_factory


def session_factory() -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


@lru_cache
def get_classifier() -> IntentClassifier:
    return IntentClassifier.from_settings(get_settings())


@lru_cache
def get_boundary() -> ExecutionBoundary:
    return MockExecutionBoundary()


@lru_cache
def get_indexers() -> Mapping[str, DAppIndexer]:
    return build_indexers(timeout=get_settings().http_timeout_seconds)


SessionDep = Annotated[AsyncSession, Depends(get_session)]
SessionFactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(session_factory)]
SettingsDep = Annotated[AdaptiveSettings, Depends(get_settings)]
ClassifierDep = Annotated[IntentClassifier, Depends(get_classifier)]
BoundaryDep = Annotated[ExecutionBoundary, Depends(get_boundary)]
IndexersDep = Annotated[Mapping[str, DAppIndexer], Depends(get_indexers)]


def get_registry_store(factory: SessionFactoryDep) -> RegistryStore:
    return SqlRegistryStore(factory)


RegistryStoreDep = Annotated[RegistryStore, Depends(get_registry_store)]


def get_resolver(store: RegistryStoreDep, settings: SettingsDep) -> DAppResolver:
    return DAppResolver(store, candidate_limit=settings.resolver_candidate_limit)


def get_scheduler(
    factory: SessionFactoryDep, indexers: IndexersDep, settings: SettingsDep,
) -> IndexerScheduler:
    return IndexerScheduler(factory, indexers, interval_minutes=settings.indexer_interval_minutes)


ResolverDep = Annotated[DAppResolver, Depends(get_resolver)]
SchedulerDep = Annotated[IndexerScheduler, Depends(get_scheduler)]
