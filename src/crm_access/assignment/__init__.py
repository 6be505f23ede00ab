"""
crm_access.assignment

Round-robin order assignment.

Responsibilities:
- Hand each new order/reorder to the next active assistant in a durable rotation.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The engine is process-agnostic: all rotation state lives in the settings store.
