"""
Services Layer

Bracket engine business logic:
- Accept sessions and ids, return models or plain dicts
- Raise TournamentError subclasses (see errors.py), never HTTPException
- Own their transactions: each mutating operation commits once
"""
