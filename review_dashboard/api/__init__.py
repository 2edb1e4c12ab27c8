"""
HTTP layer: dependencies, route wrapper and routers.
"""
