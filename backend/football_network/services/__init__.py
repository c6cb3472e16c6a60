"""Service layer.

Sub-packages
------------
- ``_shared``: framework-free errors, base service and hexagonal ports
  (token codec, refresh-token store, user lookup, alert sink).
- ``security``: password hashing.
- ``auth``: authentication lifecycle (login, token issuance/validation,
  refresh rotation, revocation).
- ``authorization``: role-hierarchy checks and declarative requirements.
- ``audit``: security audit trail.

Modules are imported explicitly by callers; nothing is re-exported here so
that importing a leaf (e.g. the password hasher from the ``User`` model)
never drags in the whole layer.
"""
