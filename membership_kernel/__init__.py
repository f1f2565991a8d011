"""
Membership Kernel - application workflow engine for association membership.

Core components:
- Domain: states, actions, roles, transition table, authorization predicates
- Models: SQLAlchemy ORM for applications, events and reference tables
- Services: WorkflowEngine (atomic transitions) and EventLog (audit trail)
- Selectors: read-only queries returning frozen DTOs
"""

__version__ = "0.1.0"
