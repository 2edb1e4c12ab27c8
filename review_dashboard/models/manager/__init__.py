from review_dashboard.models.manager.manager import Manager

__all__ = ["Manager"]
