from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CostCenterSchema(BaseModel):
    id: int
    client_id: int
    code: str
    name: str
    responsible_id: int
    valid_from: date
    valid_to: Optional[date] = None
    modified_at: datetime
    model_config = ConfigDict(from_attributes=True)

# PUBLIC payload, what clients send
class CostCenterCreatePayload(BaseModel):
    client_id: Optional[int] = None
    code: Optional[str] = None
    name: Optional[str] = None
    responsible_id: Optional[int] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    model_config = ConfigDict(extra="forbid")

class CostCenterUpdate(CostCenterCreatePayload):
    pass

class CostCenterDeletePreview(BaseModel):
    client_id: int
    name: str
    code: str
    employee_count: int
    assignment_count: int
