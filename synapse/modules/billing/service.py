"""Billing: Stripe checkout sessions and manual plan grants.

Checkout reuses the Stripe customer matching the user's email and resolves an
optional coupon code, first against coupon names/ids, then as a promotion code.
Manual grants write workspace_subscriptions directly, bypassing Stripe.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import stripe
from supabase import Client

from synapse.config import settings
from synapse.core.errors import FunctionError
from synapse.core.logging_config import log_step
from synapse.core.users import find_auth_user_by_email
from synapse.modules.billing.schemas import CheckoutResponse, PlanActivation

logger = logging.getLogger(__name__)

TAG = "CREATE-CHECKOUT"
COUPON_SCAN_LIMIT = 100


class BillingService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def resolve_discount(self, coupon_code: str) -> Optional[dict]:
        """Map a user-entered code to a Checkout `discounts` entry, or None"""
        needle = coupon_code.strip().lower()
        coupons = stripe.Coupon.list(limit=COUPON_SCAN_LIMIT)
        for coupon in coupons.data:
            name = getattr(coupon, "name", None) or ""
            if name.lower() == needle or coupon.id.lower() == needle:
                log_step(logger, TAG, "Coupon applied", couponId=coupon.id, couponName=name)
                return {"coupon": coupon.id}

        promotion_codes = stripe.PromotionCode.list(code=coupon_code, limit=1)
        if promotion_codes.data:
            promo_id = promotion_codes.data[0].id
            log_step(logger, TAG, "Promotion code applied", promoId=promo_id)
            return {"promotion_code": promo_id}

        log_step(logger, TAG, "Coupon/promotion code not found", couponCode=coupon_code)
        return None

    def create_checkout(
        self,
        user: dict,
        price_id: Optional[str],
        coupon_code: Optional[str] = None,
        origin: Optional[str] = None,
    ) -> CheckoutResponse:
        """Create a subscription Checkout Session for the authenticated user"""
        log_step(logger, TAG, "Function started")
        if not price_id:
            raise FunctionError("Price ID is required")
        log_step(logger, TAG, "Price ID received", priceId=price_id, couponCode=coupon_code)

        if not user.get("email"):
            raise FunctionError("User not authenticated or email not available")
        log_step(logger, TAG, "User authenticated", email=user["email"])

        settings.require("stripe_secret_key")
        stripe.api_key = settings.stripe_secret_key

        customers = stripe.Customer.list(email=user["email"], limit=1)
        customer_id = None
        if customers.data:
            customer_id = customers.data[0].id
            log_step(logger, TAG, "Existing customer found", customerId=customer_id)

        origin = (origin or settings.app_base_url).rstrip("/")
        session_options = {
            "line_items": [{"price": price_id, "quantity": 1}],
            "mode": "subscription",
            "success_url": f"{origin}/dashboard/checkout-success",
            "cancel_url": f"{origin}/dashboard/pricing?canceled=true",
            "metadata": {"user_id": user["id"]},
        }
        if customer_id:
            session_options["customer"] = customer_id
        else:
            session_options["customer_email"] = user["email"]

        discount = None
        if coupon_code:
            try:
                discount = self.resolve_discount(coupon_code)
            except stripe.error.StripeError as e:
                # Checkout proceeds without the discount
                log_step(logger, TAG, "Error applying coupon", error=str(e))

        # Stripe rejects discounts together with allow_promotion_codes
        if discount:
            session_options["discounts"] = [discount]
        else:
            session_options["allow_promotion_codes"] = True

        session = stripe.checkout.Session.create(**session_options)
        log_step(logger, TAG, "Checkout session created", sessionId=session.id)
        return CheckoutResponse(url=session.url)

    def find_user_workspace(self, user_id: str) -> Optional[str]:
        """Workspace owned by the user, else the first one they are a member of"""
        owned = self.supabase.table("workspaces")\
            .select("id")\
            .eq("owner_id", user_id)\
            .limit(1)\
            .execute()
        if owned.data:
            return owned.data[0]["id"]

        logger.info(f"No workspace owned by {user_id}, trying workspace_members")
        member = self.supabase.table("workspace_members")\
            .select("workspace_id")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if member.data:
            return member.data[0]["workspace_id"]
        return None

    def activate_plan(self, email: str, plan_slug: str = "premium", days: int = 365) -> PlanActivation:
        """Grant a plan to the user's workspace without going through Stripe"""
        user = find_auth_user_by_email(self.supabase, email)
        if not user:
            raise LookupError(f"User not found: {email}")
        logger.info(f"User found: {user.id}")

        workspace_id = self.find_user_workspace(user.id)
        if not workspace_id:
            raise LookupError(f"User {email} does not belong to any workspace")

        plan = self.supabase.table("subscription_plans")\
            .select("id")\
            .eq("slug", plan_slug)\
            .limit(1)\
            .execute()
        if not plan.data:
            raise LookupError(f"Plan '{plan_slug}' not found in subscription_plans")
        plan_id = plan.data[0]["id"]

        start = datetime.now(timezone.utc)
        end = start + timedelta(days=days)
        self.supabase.table("workspace_subscriptions").upsert({
            "workspace_id": workspace_id,
            "plan_id": plan_id,
            "status": "active",
            "current_period_start": start.isoformat(),
            "current_period_end": end.isoformat(),
            "stripe_customer_id": "cus_manual_dev",
            "stripe_subscription_id": f"sub_manual_dev_{int(time.time() * 1000)}",
            "cancel_at_period_end": False
        }, on_conflict="workspace_id").execute()

        logger.info(f"Plan '{plan_slug}' activated manually for {email} (workspace {workspace_id})")
        return PlanActivation(
            user_id=user.id,
            email=user.email or email,
            workspace_id=workspace_id,
            plan_id=plan_id,
            plan_slug=plan_slug,
            current_period_start=start,
            current_period_end=end,
        )
