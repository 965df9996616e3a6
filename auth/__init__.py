"""auth/ -- Credential store, password hashing and token gate for Mailgate.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or messaging/.
api/ and messaging/ import from auth/, not the other way around.
"""
