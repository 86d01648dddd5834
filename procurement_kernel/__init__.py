"""
Procurement Kernel

Purchase order lifecycle core:
- Role permission table and two-axis authorization (role x status)
- Purchase order state machine
- Transition audit context and structured denials
- Reference SQLAlchemy persistence adapters
"""

__version__ = "0.1.0"
