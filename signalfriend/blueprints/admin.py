"""
Admin Blueprint - Platform earnings, moderation, verification and disputes

Every route requires a wallet listed in ADMIN_ADDRESSES.
"""

import logging

from flask import Blueprint

from signalfriend.api import ok, parse_body, parse_query, path_address, path_content_id
from signalfriend.audit_logger import get_audit_logger
from signalfriend.middleware import current_address, require_admin
from signalfriend.schemas import (
    AdminReportsQuery,
    ListDisputesQuery,
    ResolveDisputeBody,
    UpdateDisputeBody,
    UpdateReportBody,
)
from signalfriend.security import critical_limit
from signalfriend.services import admin as admin_service
from signalfriend.services import disputes as dispute_service
from signalfriend.services import predictors as predictor_service
from signalfriend.services import signals as signal_service

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

admin_bp = Blueprint("admin", __name__)


def _audit(action: str, target: str, **details):
    audit_logger.log_admin_action(current_address(), action, target, details or None)


# ============================================================================
# Dashboard
# ============================================================================


@admin_bp.route("/stats", methods=["GET"])
@require_admin
def platform_stats():
    return ok(admin_service.get_platform_earnings())


# ============================================================================
# Reports
# ============================================================================


@admin_bp.route("/reports", methods=["GET"])
@require_admin
def list_reports():
    items, pagination = admin_service.list_reports(parse_query(AdminReportsQuery))
    return ok(items, pagination=pagination)


@admin_bp.route("/reports/<report_id>", methods=["GET"])
@require_admin
def get_report(report_id):
    return ok(admin_service.get_report(report_id))


@admin_bp.route("/reports/<report_id>", methods=["PUT"])
@critical_limit()
@require_admin
def update_report(report_id):
    body = parse_body(UpdateReportBody)
    report = admin_service.update_report_status(report_id, body)
    _audit("report.update", report_id, status=body.status)
    return ok(report, message="Report updated successfully")


# ============================================================================
# Predictors and verification
# ============================================================================


@admin_bp.route("/predictors/<address>", methods=["GET"])
@require_admin
def get_predictor(address):
    return ok(predictor_service.get_by_address(path_address(address), private=True))


@admin_bp.route("/predictors/<address>/blacklist", methods=["POST"])
@critical_limit()
@require_admin
def blacklist_predictor(address):
    address = path_address(address)
    predictor = predictor_service.update_blacklist_status(address, True)
    _audit("predictor.blacklist", address)
    return ok(predictor, message="Predictor blacklisted")


@admin_bp.route("/predictors/<address>/unblacklist", methods=["POST"])
@critical_limit()
@require_admin
def unblacklist_predictor(address):
    address = path_address(address)
    predictor = predictor_service.update_blacklist_status(address, False)
    _audit("predictor.unblacklist", address)
    return ok(predictor, message="Predictor unblacklisted")


@admin_bp.route("/verification-requests", methods=["GET"])
@require_admin
def verification_requests():
    return ok(predictor_service.list_verification_requests())


@admin_bp.route("/predictors/<address>/verify", methods=["POST"])
@critical_limit()
@require_admin
def verify_predictor(address):
    address = path_address(address)
    predictor = predictor_service.admin_verify(address)
    _audit("predictor.verify", address)
    return ok(predictor, message="Predictor verified")


@admin_bp.route("/predictors/<address>/reject", methods=["POST"])
@critical_limit()
@require_admin
def reject_predictor(address):
    address = path_address(address)
    predictor = predictor_service.admin_reject(address)
    _audit("predictor.reject", address)
    return ok(predictor, message="Verification rejected")


@admin_bp.route("/predictors/<address>/unverify", methods=["POST"])
@critical_limit()
@require_admin
def unverify_predictor(address):
    address = path_address(address)
    predictor = predictor_service.admin_unverify(address)
    _audit("predictor.unverify", address)
    return ok(predictor, message="Verification removed")


# ============================================================================
# Signals
# ============================================================================


@admin_bp.route("/signals/<content_id>", methods=["DELETE"])
@critical_limit()
@require_admin
def deactivate_signal(content_id):
    content_id = path_content_id(content_id)
    signal = signal_service.admin_deactivate(content_id)
    _audit("signal.deactivate", content_id)
    return ok(signal, message="Signal deactivated")


# ============================================================================
# Disputes
# ============================================================================


@admin_bp.route("/disputes", methods=["GET"])
@require_admin
def list_disputes():
    items, pagination = dispute_service.list_disputes_for_admin(parse_query(ListDisputesQuery))
    return ok(items, pagination=pagination)


@admin_bp.route("/disputes/counts", methods=["GET"])
@require_admin
def dispute_counts():
    return ok(dispute_service.get_dispute_counts())


@admin_bp.route("/disputes/<dispute_id>", methods=["PUT"])
@critical_limit()
@require_admin
def update_dispute(dispute_id):
    body = parse_body(UpdateDisputeBody)
    dispute = dispute_service.update_dispute_status(dispute_id, body.status, body.admin_notes)
    _audit("dispute.update", dispute_id, status=body.status)
    return ok(dispute, message="Dispute updated")


@admin_bp.route("/disputes/<dispute_id>/resolve", methods=["POST"])
@critical_limit()
@require_admin
def resolve_dispute(dispute_id):
    body = parse_body(ResolveDisputeBody)
    dispute = dispute_service.resolve_dispute(dispute_id, body.admin_notes)
    _audit("dispute.resolve", dispute_id)
    return ok(dispute, message="Dispute resolved and predictor unblacklisted")
