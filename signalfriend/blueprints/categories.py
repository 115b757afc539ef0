"""
Categories Blueprint - Signal category catalogue (writes are admin only)
"""

from flask import Blueprint

from signalfriend.api import ok, parse_body, parse_query
from signalfriend.middleware import require_admin
from signalfriend.schemas import CategoriesQuery, CreateCategoryBody, UpdateCategoryBody
from signalfriend.security import read_limit, write_limit
from signalfriend.services import categories as category_service

categories_bp = Blueprint("categories", __name__)


@categories_bp.route("", methods=["GET"])
@categories_bp.route("/", methods=["GET"])
@read_limit()
def list_categories():
    query = parse_query(CategoriesQuery)
    return ok(category_service.list_categories(active_only=query.active))


@categories_bp.route("/<slug>", methods=["GET"])
@read_limit()
def get_category(slug):
    return ok(category_service.get_by_slug(slug))


@categories_bp.route("", methods=["POST"])
@categories_bp.route("/", methods=["POST"])
@write_limit()
@require_admin
def create_category():
    category = category_service.create_category(parse_body(CreateCategoryBody))
    return ok(category, status=201, message="Category created successfully")


@categories_bp.route("/<slug>", methods=["PUT"])
@write_limit()
@require_admin
def update_category(slug):
    return ok(category_service.update_category(slug, parse_body(UpdateCategoryBody)))


@categories_bp.route("/<slug>", methods=["DELETE"])
@write_limit()
@require_admin
def delete_category(slug):
    category_service.delete_category(slug)
    return ok(message="Category deleted successfully")
