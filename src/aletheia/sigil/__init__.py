"""
Sigil - Keys, signatures and addresses.

Ed25519 keys (aptos_sdk.ed25519), ephemeral key pairs for keyless accounts,
and account address parsing.
"""
