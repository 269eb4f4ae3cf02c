"""Data access for each kind of record.

Functions take an open session and, where identity matters, the request's
``RequestContext``. They raise ``enclave.errors`` types on failure.
"""
