# quickdesk/__init__.py
"""QuickDesk helpdesk ticketing API"""

__version__ = "1.0.0"
