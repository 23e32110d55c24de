"""Service layer modules.

Each module takes an open ``Session`` plus the caller's organization id and
flushes but never commits; routers own the transaction boundary.
"""
