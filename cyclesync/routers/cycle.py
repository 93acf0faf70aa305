"""Cycle tracking endpoints: periods, symptoms, settings, forecast, sharing."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query

from cyclesync.dependencies import CurrentUserId, CycleService
from cyclesync.models.base import ErrorDetail
from cyclesync.models.cycle import (
    ClearExpectedResult,
    ClearPeriodsResult,
    CycleSettings,
    CycleView,
    DeletePeriodResult,
    EndPeriodRequest,
    EndPeriodResult,
    ExpectedPeriod,
    ExpectedPeriodRequest,
    LogPeriodRequest,
    Period,
    SettingsUpdate,
    SharedCycleView,
    SharingResult,
    SharingUpdate,
    StartPeriodRequest,
    StartPeriodResult,
    Symptom,
    SymptomCreate,
)

router = APIRouter(
    prefix="/cycle",
    tags=["cycle"],
    responses={
        400: {"model": ErrorDetail},
        403: {"model": ErrorDetail},
        404: {"model": ErrorDetail},
        409: {"model": ErrorDetail},
    },
)


@router.get("", response_model=CycleView)
async def get_cycle(user_id: CurrentUserId, service: CycleService) -> Any:
    return await service.get_cycle(user_id)


# ---------- Periods ----------

@router.post("/period/start", response_model=StartPeriodResult)
async def start_period(
    user_id: CurrentUserId, service: CycleService, body: StartPeriodRequest
) -> Any:
    return await service.start_period(user_id, date=body.date, flow=body.flow)


@router.post("/period/end", response_model=EndPeriodResult)
async def end_period(
    user_id: CurrentUserId, service: CycleService, body: EndPeriodRequest
) -> Any:
    return await service.end_period(user_id, date=body.date)


@router.post("/period/log", response_model=Period, status_code=201)
async def log_period(
    user_id: CurrentUserId, service: CycleService, body: LogPeriodRequest
) -> Any:
    return await service.log_period(
        user_id, start_date=body.start_date, end_date=body.end_date, flow=body.flow
    )


@router.delete("/period/{period_id}", response_model=DeletePeriodResult)
async def delete_period(
    period_id: uuid.UUID, user_id: CurrentUserId, service: CycleService
) -> Any:
    return await service.delete_period(user_id, period_id)


@router.delete("/periods", response_model=ClearPeriodsResult)
async def clear_periods(user_id: CurrentUserId, service: CycleService) -> Any:
    return await service.clear_periods(user_id)


# ---------- Symptoms ----------

@router.post("/symptom", response_model=Symptom, status_code=201)
async def log_symptom(
    user_id: CurrentUserId, service: CycleService, body: SymptomCreate
) -> Any:
    return await service.log_symptom(
        user_id,
        body.type,
        date=body.date,
        severity=body.severity,
        notes=body.notes,
    )


@router.get("/symptoms", response_model=list[Symptom])
async def get_symptoms(
    user_id: CurrentUserId,
    service: CycleService,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
) -> Any:
    return await service.get_symptoms(user_id, start_date=start_date, end_date=end_date)


# ---------- Settings & forecast ----------

@router.put("/settings", response_model=CycleSettings)
async def update_settings(
    user_id: CurrentUserId, service: CycleService, body: SettingsUpdate
) -> Any:
    return await service.update_settings(
        user_id,
        cycle_length=body.cycle_length,
        period_length=body.period_length,
        is_tracking=body.is_tracking,
    )


@router.put("/expected", response_model=ExpectedPeriod)
async def set_expected_period(
    user_id: CurrentUserId, service: CycleService, body: ExpectedPeriodRequest
) -> Any:
    return await service.set_expected_period(
        user_id, start_date=body.start_date, end_date=body.end_date
    )


@router.delete("/expected", response_model=ClearExpectedResult)
async def clear_expected_period(user_id: CurrentUserId, service: CycleService) -> Any:
    return await service.clear_expected_period(user_id)


# ---------- Sharing ----------

@router.put("/sharing", response_model=SharingResult)
async def update_sharing(
    user_id: CurrentUserId, service: CycleService, body: SharingUpdate
) -> Any:
    return await service.update_sharing(user_id, body.share_with)


@router.get("/user/{owner_id}", response_model=SharedCycleView)
async def get_shared_cycle(
    owner_id: uuid.UUID, user_id: CurrentUserId, service: CycleService
) -> Any:
    return await service.get_shared_cycle(user_id, owner_id)
