"""
Clientist - Source Package

Data and business layer for a small-business management app
(clients, tasks, reminders, jobs, invoices, payments, leads).

DESIGN PRINCIPLES:
1. Remote first, local fallback - the app keeps working offline
2. Callers never see which source served them
3. Validate forms before anything is written
4. Side effects (notifications, audit) are best-effort
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Clientist Team"
