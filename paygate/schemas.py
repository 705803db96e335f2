from typing import Optional
from pydantic import BaseModel


class CreateOrderRequest(BaseModel):
    # presence is checked by the order service so a missing field is a 400, not a 422
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    amount: Optional[int] = None
    description: Optional[str] = None
