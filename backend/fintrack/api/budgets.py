# backend/fintrack/api/budgets.py
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from backend.fintrack.db import get_db
from backend.fintrack.models.budget_model import Budget
from backend.fintrack.models.user_model import User
from backend.fintrack.ownership import find_owned
from backend.fintrack.schemas import BudgetCreate, BudgetOut, BudgetUpdate
from backend.fintrack.security import limit_by_user
from backend.fintrack.services import budget_service

router = APIRouter()


def _present(db: Session, budget: Budget) -> dict:
    return budget_service.serialize_budget(budget, budget_service.get_budget_progress(db, budget))


@router.get("", response_model=List[BudgetOut])
def list_budgets(user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    """
    Every budget of the caller with its live spending stats.
    """
    return [_present(db, b) for b in budget_service.list_budgets(db, user.id)]


@router.post("", response_model=BudgetOut, status_code=201)
def add_budget(payload: BudgetCreate, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    """
    Create a budget. Without end_date the budget covers exactly one period
    from start_date; without category_id it is an overall budget.
    """
    budget = budget_service.create_budget(db, user, payload.provided())
    return _present(db, budget)


@router.get("/{budget_id}", response_model=BudgetOut)
def show_budget(budget_id: int, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    budget = find_owned(db, Budget, budget_id, user.id, "Budget")
    return _present(db, budget)


@router.api_route("/{budget_id}", methods=["PUT", "PATCH"], response_model=BudgetOut)
def update_budget(
    budget_id: int,
    payload: BudgetUpdate,
    user: User = Depends(limit_by_user),
    db: Session = Depends(get_db),
):
    """
    Change limit, period or dates. The category is fixed at creation.
    """
    budget = find_owned(db, Budget, budget_id, user.id, "Budget")
    budget = budget_service.update_budget(db, budget, payload.provided())
    return _present(db, budget)


@router.delete("/{budget_id}", status_code=204)
def delete_budget(budget_id: int, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    budget = find_owned(db, Budget, budget_id, user.id, "Budget")
    budget_service.delete_budget(db, budget)
    return Response(status_code=204)
