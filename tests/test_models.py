import datetime as dt
from decimal import Decimal

from backend.fintrack.models.budget_model import Budget, BudgetPeriod
from backend.fintrack.models.category_model import Category
from backend.fintrack.models.token_model import AccessToken
from backend.fintrack.models.transaction_model import Transaction
from backend.fintrack.models.user_model import User
from backend.fintrack.security import issue_token
from backend.fintrack.services.budget_service import OVERALL_BUDGET_NAME, category_summary


def _counts(db, user_id):
    return {
        "categories": db.query(Category).filter(Category.user_id == user_id).count(),
        "transactions": db.query(Transaction).filter(Transaction.user_id == user_id).count(),
        "budgets": db.query(Budget).filter(Budget.user_id == user_id).count(),
        "tokens": db.query(AccessToken).filter(AccessToken.user_id == user_id).count(),
    }


def _populate(user, make_category, make_transaction, make_budget, db):
    category = make_category(user.id, "Food")
    make_transaction(user.id, "10.00", dt.date(2025, 6, 1), category_id=category.id)
    make_budget(user.id, "100", dt.date(2025, 6, 1), category_id=category.id)
    issue_token(db, user)
    return category


def test_hard_deleting_user_removes_everything_it_owns(db, make_user, make_category, make_transaction, make_budget):
    user = make_user()
    _populate(user, make_category, make_transaction, make_budget, db)
    user_id = user.id

    db.delete(user)
    db.commit()
    db.expire_all()

    assert db.get(User, user_id) is None
    assert _counts(db, user_id) == {"categories": 0, "transactions": 0, "budgets": 0, "tokens": 0}


def test_soft_deleting_user_keeps_owned_rows(db, make_user, make_category, make_transaction, make_budget):
    user = make_user()
    _populate(user, make_category, make_transaction, make_budget, db)

    user.soft_delete()
    db.commit()
    db.expire_all()

    assert db.get(User, user.id).is_deleted
    assert _counts(db, user.id) == {"categories": 1, "transactions": 1, "budgets": 1, "tokens": 1}


def test_hard_deleting_category_demotes_budget_and_keeps_transaction_reference(
    db, make_user, make_category, make_transaction, make_budget
):
    user = make_user()
    category = make_category(user.id, "Food")
    transaction = make_transaction(user.id, "10.00", dt.date(2025, 6, 1), category_id=category.id)
    budget = make_budget(user.id, "100", dt.date(2025, 6, 1), category_id=category.id)
    category_id = category.id

    db.delete(category)
    db.commit()
    db.expire_all()

    budget = db.get(Budget, budget.id)
    assert budget.category_id is None
    assert category_summary(budget)["name"] == OVERALL_BUDGET_NAME

    transaction = db.get(Transaction, transaction.id)
    assert transaction.category_id == category_id


def test_soft_delete_and_restore(db, make_user, make_category):
    user = make_user()
    category = make_category(user.id)

    category.soft_delete()
    db.commit()
    assert category.is_deleted

    category.restore()
    db.commit()
    assert not category.is_deleted


def test_budget_period_is_stored_as_value(db, make_user, make_budget):
    user = make_user()
    budget = make_budget(user.id, "50", dt.date(2025, 6, 1), period=BudgetPeriod.WEEKLY)
    db.expire_all()

    stored = db.get(Budget, budget.id)
    assert stored.period is BudgetPeriod.WEEKLY
    assert stored.limit == Decimal("50.00")
