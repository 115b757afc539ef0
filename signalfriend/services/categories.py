"""Category catalogue operations."""

import logging
from typing import Any, Dict, List

from sqlalchemy import func

from signalfriend.database import session_scope
from signalfriend.errors import ApiError
from signalfriend.models import Category, Signal
from signalfriend.schemas import CreateCategoryBody, UpdateCategoryBody
from signalfriend.serializers import category_to_dict

logger = logging.getLogger(__name__)


def list_categories(active_only: bool = True) -> List[Dict[str, Any]]:
    with session_scope() as session:
        query = session.query(Category)
        if active_only:
            query = query.filter(Category.is_active.is_(True))
        rows = query.order_by(Category.main_group, Category.sort_order, Category.name).all()
        return [category_to_dict(c) for c in rows]


def get_by_slug(slug: str) -> Dict[str, Any]:
    with session_scope() as session:
        category = session.query(Category).filter_by(slug=slug).first()
        if not category:
            raise ApiError.not_found(f"Category '{slug}' not found")
        return category_to_dict(category)


def get_by_id(category_id: str) -> Dict[str, Any]:
    with session_scope() as session:
        category = session.get(Category, category_id)
        if not category:
            raise ApiError.not_found("Category not found")
        return category_to_dict(category)


def create_category(data: CreateCategoryBody) -> Dict[str, Any]:
    """
    Create a category.

    Raises:
        ApiError: 409 if the slug exists or the name exists within the group
    """
    with session_scope() as session:
        if session.query(Category).filter_by(slug=data.slug).first():
            raise ApiError.conflict(f"Category with slug '{data.slug}' already exists")
        if session.query(Category).filter_by(main_group=data.main_group, name=data.name).first():
            raise ApiError.conflict(f"Category with name '{data.name}' already exists")

        category = Category(
            name=data.name,
            slug=data.slug,
            main_group=data.main_group,
            description=data.description,
            icon=data.icon,
            is_active=data.is_active,
            sort_order=data.sort_order,
        )
        session.add(category)
        session.flush()
        logger.info(f"Category created: {data.main_group} / {data.name}")
        return category_to_dict(category)


def update_category(slug: str, data: UpdateCategoryBody) -> Dict[str, Any]:
    with session_scope() as session:
        category = session.query(Category).filter_by(slug=slug).first()
        if not category:
            raise ApiError.not_found(f"Category '{slug}' not found")

        changes = data.model_dump(exclude_unset=True)
        new_name = changes.get("name", category.name)
        new_group = changes.get("main_group", category.main_group)
        if (new_name, new_group) != (category.name, category.main_group):
            clash = (
                session.query(Category)
                .filter(Category.main_group == new_group, Category.name == new_name, Category.id != category.id)
                .first()
            )
            if clash:
                raise ApiError.conflict(f"Category with name '{new_name}' already exists")

        for field, value in changes.items():
            setattr(category, field, value)
        session.flush()
        return category_to_dict(category)


def delete_category(slug: str) -> None:
    """
    Delete a category that no signal references.

    Raises:
        ApiError: 404 if missing, 409 if signals still use it
    """
    with session_scope() as session:
        category = session.query(Category).filter_by(slug=slug).first()
        if not category:
            raise ApiError.not_found(f"Category '{slug}' not found")

        signal_count = session.query(func.count(Signal.id)).filter(Signal.category_id == category.id).scalar()
        if signal_count:
            raise ApiError.conflict(f"Cannot delete category with {signal_count} signals. Deactivate it instead.")

        session.delete(category)
        logger.info(f"Category deleted: {slug}")


def count_valid(category_ids: List[str], session) -> int:
    """Number of the given ids that reference active categories."""
    if not category_ids:
        return 0
    return (
        session.query(func.count(Category.id))
        .filter(Category.id.in_(set(category_ids)), Category.is_active.is_(True))
        .scalar()
    )
