# backend/fintrack/api/categories.py
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from backend.fintrack.db import get_db
from backend.fintrack.logging_config import get_logger
from backend.fintrack.models.category_model import Category
from backend.fintrack.models.user_model import User
from backend.fintrack.ownership import find_owned, owned_query
from backend.fintrack.schemas import CategoryCreate, CategoryOut, CategoryUpdate
from backend.fintrack.security import limit_by_user
from backend.fintrack.validation import (
    check_category_name_available,
    mutable_fields,
    require_any_field,
)

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=List[CategoryOut])
def list_categories(user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    return owned_query(db, Category, user.id).order_by(Category.name, Category.id).all()


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    fields = mutable_fields("category", payload.provided())
    check_category_name_available(db, user.id, fields["name"])

    category = Category(user_id=user.id, **fields)
    db.add(category)
    db.commit()
    db.refresh(category)

    logger.info("category_created", category_id=category.id, user_id=user.id)
    return category


@router.get("/{category_id}", response_model=CategoryOut)
def show_category(category_id: int, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    return find_owned(db, Category, category_id, user.id, "Category")


@router.api_route("/{category_id}", methods=["PUT", "PATCH"], response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    user: User = Depends(limit_by_user),
    db: Session = Depends(get_db),
):
    category = find_owned(db, Category, category_id, user.id, "Category")
    changes = require_any_field("category", payload.provided())
    if "name" in changes:
        check_category_name_available(db, user.id, changes["name"], ignore_id=category.id)

    for key, value in changes.items():
        setattr(category, key, value)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    category = find_owned(db, Category, category_id, user.id, "Category")
    # Soft delete: transactions keep resolving the category, budgets keep pointing at it
    category.soft_delete()
    db.commit()
    logger.info("category_deleted", category_id=category_id, user_id=user.id)
    return Response(status_code=204)
