"""
crm_access.auth

Authentication/authorization package.

Responsibilities:
- JWT helpers and the bearer-credential authenticator.
- The static permission matrix and the authorization guard.
- FastAPI dependencies wiring both into request handling.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Everything except `auth.deps` is framework-free and usable from workers/scripts.
