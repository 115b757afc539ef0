"""Predictor profiles, verification and blacklist state."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func

from signalfriend.contracts import ZERO_ADDRESS
from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.models import Category, Predictor, Receipt
from signalfriend.schemas import CheckUniqueQuery, ListPredictorsQuery, UpdateProfileBody
from signalfriend.serializers import predictor_to_dict
from signalfriend.services.categories import count_valid
from signalfriend.utils import pagination, round_half_up, utc_now

logger = logging.getLogger(__name__)

PREDICTOR_SHARE = 0.95
PLATFORM_COMMISSION_RATE = 0.05
VERIFICATION_SALES_THRESHOLD = 100

SORT_COLUMNS = {
    "totalSales": Predictor.total_sales,
    "averageRating": Predictor.average_rating,
    "joinedAt": Predictor.joined_at,
    "totalSignals": Predictor.total_signals,
}


def find_predictor(session, address: str) -> Optional[Predictor]:
    return session.query(Predictor).filter_by(wallet_address=address.lower()).first()


def require_predictor(session, address: str) -> Predictor:
    predictor = find_predictor(session, address)
    if not predictor:
        raise ApiError.not_found(f"Predictor with address '{address}' not found")
    return predictor


def list_predictors(query: ListPredictorsQuery) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    """
    Paginated predictor directory.

    Args:
        query: Filters, sort and paging options

    Returns:
        (predictors, pagination)
    """
    with session_scope() as session:
        q = session.query(Predictor)
        if query.active:
            q = q.filter(Predictor.is_blacklisted.is_(False))
        if query.category_id:
            q = q.filter(Predictor.categories.any(Category.id == query.category_id))
        if query.search:
            q = q.filter(func.lower(Predictor.display_name).contains(query.search.lower(), autoescape=True))

        total = q.count()
        column = SORT_COLUMNS[query.sort_by]
        order = column.asc() if query.sort_order == "asc" else column.desc()
        rows = (
            q.order_by(order, Predictor.created_at.desc())
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
            .all()
        )
        return [predictor_to_dict(p) for p in rows], pagination(total, query.page, query.limit)


def get_top_predictors(metric: str = "totalSales", limit: int = 10) -> List[Dict[str, Any]]:
    limit = max(1, min(limit, 50))
    with session_scope() as session:
        rows = (
            session.query(Predictor)
            .filter(Predictor.is_blacklisted.is_(False))
            .order_by(SORT_COLUMNS[metric].desc(), Predictor.created_at.asc())
            .limit(limit)
            .all()
        )
        return [predictor_to_dict(p) for p in rows]


def get_by_address(address: str, private: bool = False) -> Dict[str, Any]:
    with session_scope() as session:
        return predictor_to_dict(require_predictor(session, address), private=private)


def find_by_address(address: str, private: bool = False) -> Optional[Dict[str, Any]]:
    with session_scope() as session:
        predictor = find_predictor(session, address)
        return predictor_to_dict(predictor, private=private) if predictor else None


def get_by_token_id(token_id: int) -> Dict[str, Any]:
    with session_scope() as session:
        predictor = session.query(Predictor).filter_by(token_id=token_id).first()
        if not predictor:
            raise ApiError.not_found(f"Predictor with tokenId '{token_id}' not found")
        return predictor_to_dict(predictor)


def is_active_predictor(address: str) -> bool:
    with session_scope() as session:
        return (
            session.query(Predictor.id)
            .filter(Predictor.wallet_address == address.lower(), Predictor.is_blacklisted.is_(False))
            .first()
            is not None
        )


def _handle_taken(session, column, value: str, exclude_id: Optional[str]) -> bool:
    q = session.query(Predictor.id).filter(func.lower(column) == value.lower())
    if exclude_id:
        q = q.filter(Predictor.id != exclude_id)
    return q.first() is not None


def update_profile(address: str, data: UpdateProfileBody, caller: str) -> Dict[str, Any]:
    """
    Update the caller's own predictor profile.

    Args:
        address: Profile to update
        data: Partial profile changes
        caller: Authenticated wallet

    Returns:
        Updated private profile

    Raises:
        ApiError: 403 for another user's or a blacklisted profile, 404 if missing,
            400 for invalid categories, 409 for a taken name or handle
    """
    if address.lower() != caller.lower():
        raise ApiError.forbidden("You can only update your own profile")

    with session_scope() as session:
        predictor = require_predictor(session, address)
        if predictor.is_blacklisted:
            raise ApiError.forbidden("Blacklisted predictors cannot update their profile")

        if data.category_ids:
            if count_valid(data.category_ids, session) != len(set(data.category_ids)):
                raise ApiError.bad_request("One or more category IDs are invalid")

        if data.display_name is not None and data.display_name != predictor.display_name:
            if _handle_taken(session, Predictor.display_name, data.display_name, predictor.id):
                raise ApiError.conflict(f"Display name '{data.display_name}' is already taken")
            predictor.display_name = data.display_name
            predictor.display_name_changed = True

        if data.bio is not None:
            predictor.bio = data.bio

        if data.avatar_url is not None:
            if data.avatar_url and not predictor.is_verified:
                raise ApiError.forbidden("Only verified predictors can set an avatar")
            predictor.avatar_url = data.avatar_url

        if data.social_links is not None:
            links = data.social_links.model_dump(exclude_unset=True)
            for handle in ("telegram", "discord"):
                value = links.get(handle)
                if value and _handle_taken(session, getattr(Predictor, handle), value, predictor.id):
                    raise ApiError.conflict(f"This {handle.capitalize()} handle is already in use")
            for key, value in links.items():
                setattr(predictor, key, value or "")

        if data.preferred_contact is not None:
            predictor.preferred_contact = data.preferred_contact

        if data.category_ids is not None:
            ids = list(dict.fromkeys(data.category_ids))
            predictor.categories = session.query(Category).filter(Category.id.in_(ids)).all() if ids else []

        session.flush()
        return predictor_to_dict(predictor, private=True)


def create_predictor_from_event(
    wallet_address: str,
    token_id: int,
    joined_at: Optional[datetime] = None,
    referred_by: Optional[str] = None,
    referral_paid: bool = False,
) -> Dict[str, Any]:
    """
    Create a predictor when its PredictorAccessPass is minted on-chain.

    Raises:
        ApiError: 409 if the wallet or token id already has a predictor
    """
    normalized = wallet_address.lower()
    with session_scope() as session:
        existing = (
            session.query(Predictor)
            .filter((Predictor.wallet_address == normalized) | (Predictor.token_id == token_id))
            .first()
        )
        if existing:
            raise ApiError.conflict(f"Predictor already exists for address '{wallet_address}'")

        referrer = referred_by.lower() if referred_by and referred_by.lower() != ZERO_ADDRESS else None
        predictor = Predictor(
            wallet_address=normalized,
            token_id=token_id,
            display_name=f"Predictor #{token_id}",
            joined_at=joined_at or utc_now(),
            referred_by=referrer,
            referral_paid=bool(referral_paid) and referrer is not None,
        )
        session.add(predictor)
        session.flush()
        logger.info(f"Predictor created: {normalized} (token #{token_id})")
        return predictor_to_dict(predictor, private=True)


def update_blacklist_status(address: str, is_blacklisted: bool) -> Dict[str, Any]:
    with session_scope() as session:
        predictor = require_predictor(session, address)
        predictor.is_blacklisted = is_blacklisted
        session.flush()
        logger.info(f"Predictor {predictor.wallet_address} blacklist status -> {is_blacklisted}")
        return predictor_to_dict(predictor, private=True)


def get_earnings(address: str) -> Dict[str, Any]:
    """Revenue breakdown computed from the predictor's receipts."""
    with session_scope() as session:
        predictor = require_predictor(session, address)
        revenue, count = (
            session.query(func.coalesce(func.sum(Receipt.price_usdt), 0.0), func.count(Receipt.id))
            .filter(Receipt.predictor_address == predictor.wallet_address)
            .one()
        )

    revenue = float(revenue or 0)
    return {
        "totalSalesRevenue": round_half_up(revenue, 2),
        "predictorEarnings": round_half_up(revenue * PREDICTOR_SHARE, 2),
        "platformCommission": round_half_up(revenue * PLATFORM_COMMISSION_RATE, 2),
        "totalSalesCount": int(count or 0),
    }


def apply_for_verification(address: str, caller: str) -> Dict[str, Any]:
    """
    Submit the caller's profile for verification review.

    A first application needs 100 sales. After a rejection the predictor needs
    100 more sales than at the previous application.
    """
    if address.lower() != caller.lower():
        raise ApiError.forbidden("You can only apply for verification for your own profile")

    with session_scope() as session:
        predictor = require_predictor(session, address)
        if predictor.is_blacklisted:
            raise ApiError.forbidden("Blacklisted predictors cannot apply for verification")
        if predictor.is_verified:
            raise ApiError.bad_request("Your profile is already verified")
        if predictor.verification_status == "pending":
            raise ApiError.bad_request("Your verification application is already pending review")

        if predictor.verification_status == "rejected":
            required = predictor.sales_at_last_application + VERIFICATION_SALES_THRESHOLD
            if predictor.total_sales < required:
                remaining = required - predictor.total_sales
                raise ApiError.bad_request(
                    f"You need {remaining} more sales since your last application to re-apply for verification"
                )
        elif predictor.total_sales < VERIFICATION_SALES_THRESHOLD:
            raise ApiError.bad_request(
                f"You need at least {VERIFICATION_SALES_THRESHOLD} sales to apply for verification"
            )

        predictor.verification_status = "pending"
        predictor.verification_applied_at = utc_now()
        predictor.sales_at_last_application = predictor.total_sales
        predictor.earnings_at_last_application = predictor.total_earnings
        session.flush()
        return predictor_to_dict(predictor, private=True)


def check_field_uniqueness(query: CheckUniqueQuery) -> Dict[str, Any]:
    columns = {
        "displayName": Predictor.display_name,
        "telegram": Predictor.telegram,
        "discord": Predictor.discord,
    }
    with session_scope() as session:
        q = session.query(Predictor.id).filter(func.lower(columns[query.field]) == query.value.lower())
        if query.exclude_address:
            q = q.filter(Predictor.wallet_address != query.exclude_address.lower())
        taken = q.first() is not None
    return {"field": query.field, "value": query.value, "available": not taken}


# ============================================================================
# Admin operations
# ============================================================================


def list_verification_requests() -> List[Dict[str, Any]]:
    with session_scope() as session:
        rows = (
            session.query(Predictor)
            .filter(Predictor.verification_status == "pending")
            .order_by(Predictor.verification_applied_at.asc())
            .all()
        )
        return [predictor_to_dict(p, private=True) for p in rows]


def admin_verify(address: str) -> Dict[str, Any]:
    with session_scope() as session:
        predictor = require_predictor(session, address)
        if predictor.is_verified:
            raise ApiError.bad_request("Predictor is already verified")
        predictor.is_verified = True
        predictor.verification_status = "none"
        session.flush()
        return predictor_to_dict(predictor, private=True)


def admin_reject(address: str) -> Dict[str, Any]:
    with session_scope() as session:
        predictor = require_predictor(session, address)
        if predictor.verification_status != "pending":
            raise ApiError.bad_request("Predictor has no pending verification request")
        predictor.verification_status = "rejected"
        session.flush()
        return predictor_to_dict(predictor, private=True)


def admin_unverify(address: str) -> Dict[str, Any]:
    with session_scope() as session:
        predictor = require_predictor(session, address)
        if not predictor.is_verified:
            raise ApiError.bad_request("Predictor is not verified")
        predictor.is_verified = False
        predictor.verification_status = "none"
        predictor.avatar_url = ""
        session.flush()
        return predictor_to_dict(predictor, private=True)
