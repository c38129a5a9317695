from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class AssignmentSchema(BaseModel):
    id: int
    client_id: int
    employee_id: int
    cost_center_id: int
    valid_from: date
    valid_to: Optional[date] = None
    is_responsible: bool
    modified_at: datetime
    model_config = ConfigDict(from_attributes=True)


# PUBLIC payload from clients
class AssignmentCreatePayload(BaseModel):
    client_id: Optional[int] = None
    employee_id: Optional[int] = None
    cost_center_id: Optional[int] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    is_responsible: Optional[bool] = None
    model_config = ConfigDict(extra="forbid")


class AssignmentUpdate(AssignmentCreatePayload):
    pass
