"""
Theurgy - Command implementations for the Aletheia CLI.

Each module corresponds to one or more top-level CLI commands:
- ephemeral: Create an ephemeral key pair
- keyless:   keyless-config, pepper, derive
- simulate:  Simulate an entry function transaction
- modules:   List entry functions published at an address
"""
