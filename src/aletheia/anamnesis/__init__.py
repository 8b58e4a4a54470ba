"""
Anamnesis - Keyless account derivation.

JWT -> pepper -> zero-knowledge proof -> KeylessAccount, with the on-chain
keyless configuration memoized between calls.
"""
