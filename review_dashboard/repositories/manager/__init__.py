from review_dashboard.repositories.manager.manager_repository import ManagerRepository

__all__ = ["ManagerRepository"]
