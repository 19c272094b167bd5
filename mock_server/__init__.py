"""Opsview stand-in server.

Implements just enough of the REST API (login, config objects, reload) to
smoke-test the client locally without a real server.
"""
