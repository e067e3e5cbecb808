"""
Users module: accounts, roles and the user directory.
"""
