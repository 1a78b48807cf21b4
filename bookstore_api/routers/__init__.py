"""API routers, one per resource. Mounted under the ``/api`` prefix."""
