"""auth/ -- Authentication, session, and authorization core for the storefront.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/, core/, or shop/.
api/ imports from auth/, not the other way around.
"""
