from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel

from garage.models import Number


class LaborType(str, Enum):
    HOURLY = "hourly"
    FIXED = "fixed"


class JobStep(BaseModel):
    id: str
    job_id: str | None = None
    title: str = ""
    actual_hours: Number = Decimal(0)
    estimated_hours: Number = Decimal(0)


class Part(BaseModel):
    id: str | None = None
    job_id: str | None = None
    name: str = ""
    part_number: str = ""
    quantity: Number = Decimal(0)
    price: Number = Decimal(0)


class Job(BaseModel):
    id: str
    title: str = ""
    job_steps: list[JobStep] = []
    parts: list[Part] = []


class LaborSettings(BaseModel):
    type: LaborType = LaborType.HOURLY
    hourly_rate: Number = Decimal(0)
    fixed_amount: Number = Decimal(0)
    description: str = ""
    consolidate_labor: bool = True

    @property
    def is_hourly(self) -> bool:
        return self.type == LaborType.HOURLY
