"""
EduScope kernel: identity, permissions, audit, ledger and entity stores.
"""
