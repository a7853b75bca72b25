from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price_id: Optional[str] = Field(default=None, alias="priceId")
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")


class CheckoutResponse(BaseModel):
    url: str


class PlanActivation(BaseModel):
    user_id: str
    email: str
    workspace_id: str
    plan_id: str
    plan_slug: str
    current_period_start: datetime
    current_period_end: datetime
