from datetime import date, datetime
from pydantic import BaseModel, ConfigDict
from typing import Optional


class EmployeeSchema(BaseModel):
    id: int
    client_id: int
    employee_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    entry_date: date
    exit_date: Optional[date] = None
    status: str
    employment_type: str
    is_manager: bool
    manager_id: Optional[int] = None
    cost_center_id: Optional[int] = None
    location_id: Optional[int] = None
    anonymized_at: Optional[datetime] = None
    modified_at: datetime
    model_config = ConfigDict(from_attributes=True)

# PUBLIC payload, what clients send
class EmployeeCreatePayload(BaseModel):
    client_id: Optional[int] = None
    employee_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    entry_date: Optional[date] = None
    exit_date: Optional[date] = None
    status: Optional[str] = None
    employment_type: Optional[str] = None
    is_manager: Optional[bool] = None
    manager_id: Optional[int] = None
    cost_center_id: Optional[int] = None
    location_id: Optional[int] = None
    model_config = ConfigDict(extra="forbid")

class EmployeeUpdate(EmployeeCreatePayload):
    pass


# summaries for the active employee listing
class CostCenterRef(BaseModel):
    id: int
    code: str
    name: str
    model_config = ConfigDict(from_attributes=True)

class ManagerRef(BaseModel):
    id: int
    employee_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class ActiveEmployeeSchema(BaseModel):
    id: int
    employee_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    entry_date: date
    cost_center: Optional[CostCenterRef] = None
    manager: Optional[ManagerRef] = None
    model_config = ConfigDict(from_attributes=True)


class AnonymizePayload(BaseModel):
    before: Optional[str] = None
    model_config = ConfigDict(extra="forbid")

class AnonymizeResult(BaseModel):
    value: int
