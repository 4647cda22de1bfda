"""Per-user notification history.

Services:
    - NotificationStore: DuckDB storage with owner-scoped reads and writes.
"""
