"""auth/ -- Credential records, password hashing and session tokens for YAccounting.

Layer rule: auth/ imports from core/ and third-party libraries.
It does NOT import from api/ or ledger/.
api/ imports from auth/, not the other way around.
"""
