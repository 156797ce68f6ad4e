from src.models.base import Base, TenantScopedBase, TimestampedBase
from src.models.company_user import CompanyUser
from src.models.expense import Expense
from src.models.project import Project
from src.models.tenant import Tenant

__all__ = [
    "Base",
    "TimestampedBase",
    "TenantScopedBase",
    "Tenant",
    "Project",
    "Expense",
    "CompanyUser",
]
