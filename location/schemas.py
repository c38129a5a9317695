from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

class LocationSchema(BaseModel):
    id: int
    client_id: int
    city: str
    country_code: str
    zip_code: str
    street: str
    address_supplement: Optional[str] = None
    valid_from: date
    valid_to: Optional[date] = None
    modified_at: datetime
    model_config = ConfigDict(from_attributes=True)

# PUBLIC payload, what clients send
class LocationCreatePayload(BaseModel):
    client_id: Optional[int] = None
    city: Optional[str] = None
    country_code: Optional[str] = None
    zip_code: Optional[str] = None
    street: Optional[str] = None
    address_supplement: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    model_config = ConfigDict(extra="forbid")

class LocationUpdate(LocationCreatePayload):
    pass

class LocationDeletePreview(BaseModel):
    city: str
    street: str
    employee_count: int
