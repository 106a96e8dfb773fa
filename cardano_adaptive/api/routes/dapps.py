"""Registry listing and statistics."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter

from cardano_adaptive.api.deps import SessionDep
from cardano_adaptive.storage.repository import DAppRepo
from cardano_adaptive.ui.schema_compiler import CamelModel

router = APIRouter()


class DAppOut(CamelModel):
    id: str
    name: str
    type: str
    description: str
    website_url: str
    logo_url: str | None = None
    tvl: float | None = None
    volume_24h: float | None = None
    last_indexed: datetime | None = None
    action_types: list[str]


class CategoryCount(CamelModel):
    type: str
    count: int


class DAppSample(CamelModel):
    name: str
    type: str
    description: str
    website_url: str


class RegistryStats(CamelModel):
    total: int
    active: int
    with_interfaces: int
    by_type: list[CategoryCount]
    samples: list[DAppSample]


@router.get("/list", response_model=list[DAppOut])
async def list_dapps(session: SessionDep) -> list[DAppOut]:
    dapps = await DAppRepo(session).list_active()
    return [
        DAppOut(
            id=d.id,
            name=d.name,
            type=d.type.value,
            description=d.description,
            website_url=d.website_url,
            logo_url=d.logo_url,
            tvl=d.tvl,
            volume_24h=d.volume_24h,
            last_indexed=d.last_indexed,
            action_types=sorted(i.action_type for i in d.interfaces),
        )
        for d in dapps
    ]


@router.get("/stats", response_model=RegistryStats)
async def registry_stats(session: SessionDep) -> RegistryStats:
    return RegistryStats.model_validate(await DAppRepo(session).stats())
