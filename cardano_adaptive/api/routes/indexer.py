"""Manual indexer trigger and status."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from cardano_adaptive.api.deps import SchedulerDep

router = APIRouter()


@router.post("/run")
async def run_indexer(scheduler: SchedulerDep) -> dict[str, Any]:
    summary = await scheduler.run_once()
    return {"success": True, **summary.to_wire()}


@router.get("/status")
async def indexer_status(scheduler: SchedulerDep) -> dict[str, Any]:
    return await scheduler.status()
