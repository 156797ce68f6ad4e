from src.core.repositories.base import TenantContextMissingError, TenantRepository
from src.core.repositories.company_users import CompanyUserRepository
from src.core.repositories.expenses import ExpenseRepository
from src.core.repositories.projects import ProjectRepository

__all__ = [
    "TenantContextMissingError",
    "TenantRepository",
    "CompanyUserRepository",
    "ExpenseRepository",
    "ProjectRepository",
]
