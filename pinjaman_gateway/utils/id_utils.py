"""Identifier generation"""

import uuid


def generate_id() -> str:
    """Opaque unique id for borrowers, transactions, entries and installments"""
    return str(uuid.uuid4())
