"""
Reports Blueprint - Buyer reports against purchased signals
"""

from flask import Blueprint

from signalfriend.api import ok, parse_body, parse_query, path_address, path_content_id, path_token_id
from signalfriend.middleware import current_address, require_auth
from signalfriend.schemas import CreateReportBody, PageQuery, PredictorReportsQuery
from signalfriend.security import read_limit, write_limit
from signalfriend.services import reports as report_service

reports_bp = Blueprint("reports", __name__)


@reports_bp.route("", methods=["POST"])
@reports_bp.route("/", methods=["POST"])
@write_limit()
@require_auth
def create_report():
    report = report_service.create_report(parse_body(CreateReportBody), current_address())
    return ok(report, status=201, message="Report submitted successfully")


@reports_bp.route("/mine", methods=["GET"])
@require_auth
def my_reports():
    items, pagination = report_service.get_my_reports(current_address(), parse_query(PageQuery))
    return ok(items, pagination=pagination)


@reports_bp.route("/check/<token_id>", methods=["GET"])
@read_limit()
def check_report(token_id):
    report = report_service.find_by_token_id(path_token_id(token_id))
    return ok({"exists": report is not None, "report": report})


@reports_bp.route("/signal/<content_id>", methods=["GET"])
@read_limit()
def signal_reports(content_id):
    items, pagination = report_service.get_signal_reports(path_content_id(content_id), parse_query(PageQuery))
    return ok(items, pagination=pagination)


@reports_bp.route("/signal/<content_id>/count", methods=["GET"])
@read_limit()
def signal_report_count(content_id):
    content_id = path_content_id(content_id)
    return ok({"contentId": content_id, "count": report_service.get_signal_report_count(content_id)})


@reports_bp.route("/predictor/<address>", methods=["GET"])
@read_limit()
def predictor_reports(address):
    items, pagination = report_service.get_predictor_reports(path_address(address), parse_query(PredictorReportsQuery))
    return ok(items, pagination=pagination)


@reports_bp.route("/predictor/<address>/stats", methods=["GET"])
@read_limit()
def predictor_report_stats(address):
    return ok(report_service.get_predictor_report_stats(path_address(address)))


@reports_bp.route("/<token_id>", methods=["GET"])
@read_limit()
def get_report(token_id):
    return ok(report_service.get_by_token_id(path_token_id(token_id)))
