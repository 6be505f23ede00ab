"""
crm_access.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, repositories, and the SQL-backed
  implementations of the core's collaborator ports.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The access core only sees `crm_access.ports`; swapping the backing store means
# writing new port implementations, not touching the guard or the engine.
