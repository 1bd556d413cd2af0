import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field

class ReturnIn(BaseModel):
    dn_item_id: UUID
    returned_quantity: int = Field(..., gt=0, le=10000, description="Units coming back in this return")
    return_date: dt.date

class ReturnOut(BaseModel):
    success: bool = True
    message: str = "Return processed successfully"
    new_status: str
    new_returned_quantity: int

class AccessOut(BaseModel):
    resource: str
    id: UUID
    allowed: bool

class WhoAmIOut(BaseModel):
    id: str
    role: str | None = None
