"""auth/ -- Accounts, credentials and the JWT token lifecycle.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/, and touches core/ for type hints only:
the Settings instance reaches TokenCodec through its constructor.
api/ imports from auth/, not the other way around.
"""
