"""
FastAPI service for the Bookshelf API.

This package provides:
- Email signup/login issuing signed bearer tokens
- User lookup and update
- Book catalog create, read, update and delete
- Bearer-token authorization on mutating routes
"""
