"""Marketing report dashboard backend.

Daily ad-performance reports are stored in the operational database and
mirrored to a spreadsheet; dashboards aggregate them with role-scoped
visibility.
"""

__all__: list[str] = []
