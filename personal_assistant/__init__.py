"""Personal assistant core.

Ingests per-user personal data (email metadata, drive listings, contacts,
calendar events), aggregates it into a preference profile and answers
questions about that profile through a rule-based chat router.
"""

__version__ = "0.1.0"
