"""Blacklist disputes raised by predictors and handled by admins."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func

from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.models import Dispute, Predictor
from signalfriend.schemas import ListDisputesQuery
from signalfriend.serializers import dispute_to_dict
from signalfriend.utils import pagination, utc_now

logger = logging.getLogger(__name__)

DISPUTE_STATUSES = ("pending", "contacted", "resolved", "rejected")
TERMINAL_STATUSES = ("resolved", "rejected")


def create_dispute(address: str) -> Dict[str, Any]:
    """
    Open a dispute for a blacklisted predictor.

    Raises:
        ApiError: 404 if the predictor is unknown, 400 if it is not
            blacklisted, 409 if it already has a dispute
    """
    address = address.lower()
    with session_scope() as session:
        predictor = session.query(Predictor).filter_by(wallet_address=address).first()
        if not predictor:
            raise ApiError.not_found("Predictor not found")
        if not predictor.is_blacklisted:
            raise ApiError.bad_request("Only blacklisted predictors can submit a dispute")
        if session.query(Dispute.id).filter_by(predictor_address=address).first():
            raise ApiError.conflict("You have already submitted a dispute. Wait for admin response.")

        dispute = Dispute(predictor_address=address, status="pending")
        session.add(dispute)
        session.flush()
        logger.info(f"Dispute opened by {address}")
        return dispute_to_dict(dispute)


def get_dispute_by_predictor(address: str) -> Optional[Dict[str, Any]]:
    with session_scope() as session:
        dispute = session.query(Dispute).filter_by(predictor_address=address.lower()).first()
        return dispute_to_dict(dispute) if dispute else None


def has_active_dispute(address: str) -> bool:
    with session_scope() as session:
        return (
            session.query(Dispute.id)
            .filter(Dispute.predictor_address == address.lower(), Dispute.status.in_(("pending", "contacted")))
            .first()
            is not None
        )


def list_disputes_for_admin(query: ListDisputesQuery) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    with session_scope() as session:
        q = session.query(Dispute)
        if query.status:
            q = q.filter(Dispute.status == query.status)
        total = q.count()
        disputes = (
            q.order_by(Dispute.created_at.desc())
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
            .all()
        )

        addresses = [d.predictor_address for d in disputes]
        predictors = {
            p.wallet_address: p
            for p in session.query(Predictor).filter(Predictor.wallet_address.in_(addresses)).all()
        } if addresses else {}

        items = [dispute_to_dict(d, predictors.get(d.predictor_address)) for d in disputes]
        return items, pagination(total, query.page, query.limit)


def _require_dispute(session, dispute_id: str) -> Dispute:
    dispute = session.get(Dispute, dispute_id)
    if not dispute:
        raise ApiError.not_found(f"Dispute with ID '{dispute_id}' not found")
    return dispute


def update_dispute_status(dispute_id: str, status: str, admin_notes: Optional[str] = None) -> Dict[str, Any]:
    with session_scope() as session:
        dispute = _require_dispute(session, dispute_id)
        dispute.status = status
        if admin_notes is not None:
            dispute.admin_notes = admin_notes
        if status in TERMINAL_STATUSES:
            dispute.resolved_at = utc_now()
        session.flush()
        return dispute_to_dict(dispute)


def resolve_dispute(dispute_id: str, admin_notes: Optional[str] = None) -> Dict[str, Any]:
    """Resolve a dispute in the predictor's favour and lift the blacklist."""
    with session_scope() as session:
        dispute = _require_dispute(session, dispute_id)
        predictor = session.query(Predictor).filter_by(wallet_address=dispute.predictor_address).first()
        if predictor:
            predictor.is_blacklisted = False
        else:
            logger.warning(f"Resolving dispute {dispute_id} for unknown predictor {dispute.predictor_address}")

        dispute.status = "resolved"
        dispute.resolved_at = utc_now()
        if admin_notes:
            dispute.admin_notes = admin_notes
        session.flush()
        logger.info(f"Dispute {dispute_id} resolved; {dispute.predictor_address} unblacklisted")
        return dispute_to_dict(dispute, predictor)


def get_dispute_counts() -> Dict[str, int]:
    with session_scope() as session:
        rows = dict(session.query(Dispute.status, func.count(Dispute.id)).group_by(Dispute.status).all())
    counts = {status: int(rows.get(status, 0)) for status in DISPUTE_STATUSES}
    counts["total"] = sum(counts.values())
    return counts
