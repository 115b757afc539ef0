"""Signal listings, protected content and predictor-side management."""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_

from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.models import Category, Predictor, Receipt, Signal
from signalfriend.schemas import (
    CreateSignalBody,
    ListSignalsQuery,
    MySignalsQuery,
    PredictorSignalsQuery,
    UpdateSignalBody,
)
from signalfriend.serializers import signal_is_expired, signal_to_dict
from signalfriend.utils import pagination, utc_now, uuid_to_bytes32

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": Signal.created_at,
    "totalSales": Signal.total_sales,
    "averageRating": Signal.average_rating,
    "priceUsdt": Signal.price_usdt,
}


def _order(sort_by: str, sort_order: str):
    column = SORT_COLUMNS[sort_by]
    return column.asc() if sort_order == "asc" else column.desc()


def require_signal(session, content_id: str) -> Signal:
    signal = session.query(Signal).filter_by(content_id=content_id).first()
    if not signal:
        raise ApiError.not_found(f"Signal with contentId '{content_id}' not found")
    return signal


def _require_active_category(session, category_id: str) -> Category:
    category = session.get(Category, category_id)
    if not category or not category.is_active:
        raise ApiError.bad_request("Invalid or inactive category")
    return category


def list_signals(query: ListSignalsQuery) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    """
    Public marketplace listing.

    ``active`` keeps only signals that are both active and unexpired.
    ``excludeBuyerAddress`` hides signals that wallet has already bought.
    """
    now = utc_now()
    with session_scope() as session:
        q = session.query(Signal)
        if query.active:
            q = q.filter(Signal.is_active.is_(True), Signal.expires_at > now)
        if query.category_id:
            q = q.filter(Signal.category_id == query.category_id)
        if query.predictor_address:
            q = q.filter(Signal.predictor_address == query.predictor_address.lower())
        if query.exclude_buyer_address:
            purchased = session.query(Receipt.content_id).filter(
                Receipt.buyer_address == query.exclude_buyer_address.lower()
            )
            q = q.filter(Signal.content_id.notin_(purchased))
        if query.search:
            q = q.filter(func.lower(Signal.title).contains(query.search.lower(), autoescape=True))
        if query.min_price is not None:
            q = q.filter(Signal.price_usdt >= query.min_price)
        if query.max_price is not None:
            q = q.filter(Signal.price_usdt <= query.max_price)
        if query.risk_level:
            q = q.filter(Signal.risk_level == query.risk_level)
        if query.potential_reward:
            q = q.filter(Signal.potential_reward == query.potential_reward)

        total = q.count()
        rows = (
            q.order_by(_order(query.sort_by, query.sort_order), Signal.id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
            .all()
        )
        return [signal_to_dict(s) for s in rows], pagination(total, query.page, query.limit)


def get_by_content_id(content_id: str) -> Dict[str, Any]:
    with session_scope() as session:
        return signal_to_dict(require_signal(session, content_id))


def get_protected_content(content_id: str, caller: Optional[str], caller_is_admin: bool = False) -> Dict[str, Any]:
    """
    Reveal signal content.

    Content becomes public once the signal expires. Before that only the
    predictor, a wallet holding a receipt, or an admin may read it.

    Raises:
        ApiError: 404 if missing, 401 without a caller, 403 without a purchase
    """
    with session_scope() as session:
        signal = require_signal(session, content_id)
        expired = signal_is_expired(signal)
        if expired:
            return {"content": signal.content, "isExpired": True}

        if not caller:
            raise ApiError.unauthorized("Authentication required to view this signal's content")

        caller = caller.lower()
        if caller == signal.predictor_address or caller_is_admin:
            return {"content": signal.content, "isExpired": False}

        receipt = session.query(Receipt.id).filter_by(content_id=content_id, buyer_address=caller).first()
        if receipt is None:
            raise ApiError.forbidden("You must purchase this signal to view its content")
        return {"content": signal.content, "isExpired": False}


def get_content_identifier(content_id: str, caller: str) -> Dict[str, Any]:
    """Return the bytes32 identifier a buyer passes to the market contract."""
    with session_scope() as session:
        signal = require_signal(session, content_id)
        if not signal.is_active:
            raise ApiError.bad_request("Signal is not active")
        if signal_is_expired(signal):
            raise ApiError.bad_request("Signal has expired")
        if signal.predictor_address == caller.lower():
            raise ApiError.bad_request("You cannot purchase your own signal")
        return {"contentId": content_id, "contentIdentifier": uuid_to_bytes32(content_id)}


def create_signal(data: CreateSignalBody, caller: str, min_price: float) -> Dict[str, Any]:
    """
    List a new signal for the calling predictor.

    Args:
        data: Validated signal fields
        caller: Authenticated wallet; must be an active predictor
        min_price: Minimum listing price in USDT

    Returns:
        Public signal (without content)
    """
    if data.price_usdt < min_price:
        raise ApiError.bad_request(
            "Validation failed",
            [{"field": "priceUsdt", "message": f"Price must be at least {min_price:g} USDT"}],
        )

    with session_scope() as session:
        predictor = (
            session.query(Predictor)
            .filter(Predictor.wallet_address == caller.lower(), Predictor.is_blacklisted.is_(False))
            .first()
        )
        if not predictor:
            raise ApiError.forbidden(
                "Only active predictors can create signals. You must hold a PredictorAccessPass NFT."
            )
        _require_active_category(session, data.category_id)

        now = utc_now()
        signal = Signal(
            content_id=str(uuid.uuid4()),
            predictor_id=predictor.id,
            predictor_address=predictor.wallet_address,
            title=data.title,
            description=data.description,
            content=data.content,
            category_id=data.category_id,
            price_usdt=data.price_usdt,
            expires_at=now + timedelta(days=data.expiry_days),
            risk_level=data.risk_level,
            potential_reward=data.potential_reward,
        )
        session.add(signal)
        predictor.total_signals = Predictor.total_signals + 1
        session.flush()
        session.refresh(signal)
        logger.info(f"Signal created: {signal.content_id} by {predictor.wallet_address}")
        return signal_to_dict(signal)


def _owned_signal(session, content_id: str, caller: str, action: str) -> Signal:
    signal = require_signal(session, content_id)
    if signal.predictor_address != caller.lower():
        raise ApiError.forbidden(f"You can only {action} your own signals")
    return signal


def update_signal(content_id: str, data: UpdateSignalBody, caller: str) -> Dict[str, Any]:
    with session_scope() as session:
        signal = _owned_signal(session, content_id, caller, "update")
        changes = data.model_dump(exclude_unset=True)
        if "category_id" in changes:
            _require_active_category(session, changes["category_id"])
        for field, value in changes.items():
            setattr(signal, field, value)
        session.flush()
        return signal_to_dict(signal)


def deactivate_signal(content_id: str, caller: str) -> Dict[str, Any]:
    with session_scope() as session:
        signal = _owned_signal(session, content_id, caller, "deactivate")
        signal.is_active = False
        session.flush()
        return signal_to_dict(signal)


def expire_signal(content_id: str, caller: str) -> Dict[str, Any]:
    """End a signal early; its content becomes public."""
    with session_scope() as session:
        signal = _owned_signal(session, content_id, caller, "expire")
        if signal_is_expired(signal):
            raise ApiError.bad_request("Signal has already expired")
        signal.expires_at = utc_now()
        session.flush()
        return signal_to_dict(signal)


def admin_deactivate(content_id: str) -> Dict[str, Any]:
    with session_scope() as session:
        signal = require_signal(session, content_id)
        signal.is_active = False
        session.flush()
        return signal_to_dict(signal)


def get_my_signals(caller: str, query: MySignalsQuery) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    now = utc_now()
    with session_scope() as session:
        q = session.query(Signal).filter(Signal.predictor_address == caller.lower())
        if query.status == "active":
            q = q.filter(Signal.is_active.is_(True), Signal.expires_at > now)
        elif query.status == "inactive":
            q = q.filter(or_(Signal.is_active.is_(False), Signal.expires_at <= now))

        total = q.count()
        rows = (
            q.order_by(_order(query.sort_by, query.sort_order), Signal.id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
            .all()
        )
        return [signal_to_dict(s) for s in rows], pagination(total, query.page, query.limit)


def get_signals_by_predictor(address: str, query: PredictorSignalsQuery) -> List[Dict[str, Any]]:
    now = utc_now()
    with session_scope() as session:
        q = session.query(Signal).filter(Signal.predictor_address == address.lower())
        if not query.include_inactive:
            q = q.filter(and_(Signal.is_active.is_(True), Signal.expires_at > now))
        rows = q.order_by(_order(query.sort_by, query.sort_order), Signal.id).all()
        return [signal_to_dict(s) for s in rows]

