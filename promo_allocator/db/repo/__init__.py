from promo_allocator.db.repo.assignments_repo import AssignmentsRepo
from promo_allocator.db.repo.ledger_repo import LedgerRepo
from promo_allocator.db.repo.pool_repo import PoolRepo

__all__ = ["AssignmentsRepo", "LedgerRepo", "PoolRepo"]
