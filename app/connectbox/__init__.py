"""Monitoring for the Connect Box family of cable routers.

The router's web UI was never meant to be scripted against: no API docs, a token that
changes on every request and a habit of answering with its login page whenever it
decides the session is over.
Everything here has only ever been tested against a Connect Box (CH7465LG) but the
getter/setter protocol looks to be shared by the whole family.
"""
