"""
crm_access.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request/actor context propagation for consistent log enrichment.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Audit events are a separate concern (`crm_access.audit`); logs here are operational.
