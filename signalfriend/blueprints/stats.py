"""
Stats Blueprint - Public platform counters
"""

from flask import Blueprint

from signalfriend.api import ok
from signalfriend.security import read_limit
from signalfriend.services.stats import get_public_stats

stats_bp = Blueprint("stats", __name__)


@stats_bp.route("", methods=["GET"])
@stats_bp.route("/", methods=["GET"])
@read_limit()
def public_stats():
    return ok(get_public_stats())
