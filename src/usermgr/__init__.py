"""Role-based user and file management API.

Serve ``usermgr.api:app``, or build an app around a custom store with
``usermgr.api.create_app``.
"""
