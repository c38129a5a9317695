from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ClientSchema(BaseModel):
    id: int
    company_id: str
    name: str
    country_code: Optional[str] = None
    modified_at: datetime
    model_config = ConfigDict(from_attributes=True)

# PUBLIC payload, what clients send
class ClientCreatePayload(BaseModel):
    company_id: Optional[str] = None
    name: Optional[str] = None
    country_code: Optional[str] = None
    model_config = ConfigDict(extra="forbid")

class ClientUpdate(BaseModel):
    company_id: Optional[str] = None
    name: Optional[str] = None
    country_code: Optional[str] = None
    model_config = ConfigDict(extra="forbid")

class ClientDeletePreview(BaseModel):
    client_name: str
    employee_count: int
    cost_center_count: int
    location_count: int
    assignment_count: int
