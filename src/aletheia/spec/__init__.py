"""
Spec - Value models and JSON schemas for chain resources and service replies.
"""
