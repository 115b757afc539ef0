"""Buyer reports against purchased signals."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func

from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.models import Receipt, Report, Signal
from signalfriend.schemas import CreateReportBody, PageQuery, PredictorReportsQuery
from signalfriend.serializers import report_to_dict
from signalfriend.utils import pagination

logger = logging.getLogger(__name__)

REPORT_STATUSES = ("pending", "reviewed", "resolved", "dismissed")


def create_report(data: CreateReportBody, caller: str) -> Dict[str, Any]:
    """
    Report a purchased signal.

    Raises:
        ApiError: 404 for an unknown receipt or signal, 403 for another
            wallet's receipt, 409 when the receipt was already reported
    """
    caller = caller.lower()
    with session_scope() as session:
        receipt = session.query(Receipt).filter_by(token_id=data.token_id).first()
        if not receipt:
            raise ApiError.not_found(f"Receipt with tokenId '{data.token_id}' not found")
        if receipt.buyer_address != caller:
            raise ApiError.forbidden("You can only report signals you have purchased")
        if session.query(Report.id).filter_by(token_id=data.token_id).first():
            raise ApiError.conflict("You have already reported this purchase")

        signal = session.query(Signal).filter_by(content_id=receipt.content_id).first()
        if not signal:
            raise ApiError.not_found("Signal associated with this receipt not found")

        report = Report(
            token_id=data.token_id,
            signal_id=signal.id,
            content_id=receipt.content_id,
            reporter_address=caller,
            predictor_address=receipt.predictor_address,
            reason=data.reason,
            description=data.description or "",
            status="pending",
        )
        session.add(report)
        session.flush()
        logger.info(f"Report created for signal {receipt.content_id}: {data.reason}")
        return report_to_dict(report)


def _page(q, page: int, limit: int) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    total = q.count()
    rows = q.order_by(Report.created_at.desc(), Report.token_id.desc()).offset((page - 1) * limit).limit(limit).all()
    return [report_to_dict(r) for r in rows], pagination(total, page, limit)


def get_signal_reports(content_id: str, query: PageQuery):
    with session_scope() as session:
        return _page(session.query(Report).filter(Report.content_id == content_id), query.page, query.limit)


def get_predictor_reports(address: str, query: PredictorReportsQuery):
    with session_scope() as session:
        q = session.query(Report).filter(Report.predictor_address == address.lower())
        if query.status:
            q = q.filter(Report.status == query.status)
        return _page(q, query.page, query.limit)


def get_my_reports(caller: str, query: PageQuery):
    with session_scope() as session:
        return _page(session.query(Report).filter(Report.reporter_address == caller.lower()), query.page, query.limit)


def get_predictor_report_stats(address: str) -> Dict[str, Any]:
    address = address.lower()
    with session_scope() as session:
        by_status = dict(
            session.query(Report.status, func.count(Report.id))
            .filter(Report.predictor_address == address)
            .group_by(Report.status)
            .all()
        )
        by_reason = dict(
            session.query(Report.reason, func.count(Report.id))
            .filter(Report.predictor_address == address)
            .group_by(Report.reason)
            .all()
        )

    stats = {status: int(by_status.get(status, 0)) for status in REPORT_STATUSES}
    stats["total"] = sum(stats.values())
    stats["byReason"] = {reason: int(count) for reason, count in by_reason.items()}
    return stats


def get_signal_report_count(content_id: str) -> int:
    with session_scope() as session:
        return session.query(func.count(Report.id)).filter(Report.content_id == content_id).scalar() or 0


def find_by_token_id(token_id: int) -> Optional[Dict[str, Any]]:
    with session_scope() as session:
        report = session.query(Report).filter_by(token_id=token_id).first()
        return report_to_dict(report) if report else None


def get_by_token_id(token_id: int) -> Dict[str, Any]:
    report = find_by_token_id(token_id)
    if report is None:
        raise ApiError.not_found(f"Report for tokenId '{token_id}' not found")
    return report


def report_exists(token_id: int) -> bool:
    return find_by_token_id(token_id) is not None
