"""Authentication: password hashing, bearer tokens and the login endpoints."""
