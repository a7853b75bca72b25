from fastapi import APIRouter, Depends, Header, Security
from fastapi.security import HTTPAuthorizationCredentials
from supabase import Client
from typing import Optional

from synapse.core.dependencies import security, require_token, get_user_from_token
from synapse.core.errors import FunctionError
from synapse.database.supabase_client import get_supabase, get_service_supabase
from synapse.modules.billing.schemas import CheckoutRequest, CheckoutResponse
from synapse.modules.billing.service import BillingService

router = APIRouter(tags=["billing"])


def get_billing_service(supabase: Client = Depends(get_service_supabase)) -> BillingService:
    return BillingService(supabase)


@router.post("/create-checkout", response_model=CheckoutResponse)
async def create_checkout(
    body: CheckoutRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    origin: Optional[str] = Header(None),
    auth_client: Client = Depends(get_supabase),
    service: BillingService = Depends(get_billing_service)
):
    """Create a Stripe Checkout Session and return its URL"""
    # price is validated before the caller is authenticated
    if not body.price_id:
        raise FunctionError("Price ID is required")
    user = get_user_from_token(require_token(credentials), auth_client)
    return service.create_checkout(user, body.price_id, body.coupon_code, origin)
