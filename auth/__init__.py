"""auth/ -- Credential checking, token issuing and the user/app store.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. The API and the CLI build an
AuthService from auth/ and hand it settings, not the other way around.
"""
