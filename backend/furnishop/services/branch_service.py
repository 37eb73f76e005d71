from __future__ import annotations

from furnishop.extensions import db
from furnishop.models import Branch, User
from furnishop.services.concurrency import lock_for_update, run_with_retry
from furnishop.validation import ConflictError


class BranchError(Exception):
    """Raised when branch operations fail."""
    pass


BRANCH_FIELDS = ("name", "code", "address", "phone", "manager_id")


def _check_unique(name: str | None, code: str | None, *, exclude_id: int | None = None) -> None:
    if name:
        q = db.session.query(Branch).filter(Branch.name == name)
        if exclude_id is not None:
            q = q.filter(Branch.id != exclude_id)
        if q.first():
            raise ConflictError(f"Branch name already exists: {name}")
    if code:
        q = db.session.query(Branch).filter(Branch.code == code)
        if exclude_id is not None:
            q = q.filter(Branch.id != exclude_id)
        if q.first():
            raise ConflictError(f"Branch code already exists: {code}")


def _check_manager(manager_id: int | None) -> None:
    if manager_id is not None and db.session.get(User, manager_id) is None:
        raise BranchError(f"User {manager_id} not found")


def create_branch(
    name: str,
    *,
    code: str | None = None,
    address: str | None = None,
    phone: str | None = None,
    manager_id: int | None = None,
) -> Branch:
    def _op():
        clean_name = (name or "").strip()
        if not clean_name:
            raise BranchError("Branch name is required")

        _check_unique(clean_name, code)
        _check_manager(manager_id)

        branch = Branch(
            name=clean_name,
            code=code or None,
            address=address or None,
            phone=phone or None,
            manager_id=manager_id,
        )
        db.session.add(branch)
        db.session.flush()
        return branch

    return run_with_retry(_op)


def update_branch(branch_id: int, patch: dict) -> Branch:
    def _op():
        branch = lock_for_update(db.session.query(Branch).filter_by(id=branch_id)).first()
        if not branch:
            raise BranchError("Branch not found")

        if "name" in patch and not (patch["name"] or "").strip():
            raise BranchError("Branch name is required")

        _check_unique(patch.get("name"), patch.get("code"), exclude_id=branch_id)
        if "manager_id" in patch:
            _check_manager(patch["manager_id"])

        for key in BRANCH_FIELDS:
            if key in patch:
                setattr(branch, key, patch[key])

        db.session.flush()
        return branch

    return run_with_retry(_op)


def get_branch(branch_id: int) -> Branch | None:
    return db.session.get(Branch, branch_id)


def list_branches() -> list[Branch]:
    return db.session.query(Branch).order_by(Branch.name.asc()).all()
